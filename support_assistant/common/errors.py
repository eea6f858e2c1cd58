"""
Error taxonomy shared by the ticket store, LLM client and classifier.

Each component catches these at its own boundary and converts them into a
safe default; none of them ever reaches the caller of QueryRouter.route().
"""


class SupportAssistantError(Exception):
    """Base class for all assistant errors."""
    pass


class TransportUnavailable(SupportAssistantError):
    """The ticket store (or the network in front of it) is unreachable."""
    pass


class EmbeddingUnavailable(SupportAssistantError):
    """The vectorization backend is down while the store itself is reachable."""
    pass


class ServiceError(SupportAssistantError):
    """Generic upstream fault reported by a reachable service."""
    pass


class GenerationFailure(SupportAssistantError, RuntimeError):
    """An LLM call failed or no LLM provider is configured."""
    pass


class ParseFailure(SupportAssistantError, ValueError):
    """LLM output could not be decoded into the expected structure."""
    pass
