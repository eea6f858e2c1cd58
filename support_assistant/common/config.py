"""
Configuration Management for the Support Assistant

Loads configuration from ~/.support_assistant/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field

logger = logging.getLogger("support_assistant.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".support_assistant"
CONFIG_PATH = CONFIG_DIR / "config.json"


@dataclass
class LLMConfig:
    """LLM provider configuration shared by classifier and synthesizer"""
    provider: str = "google"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    google_api_key: str = ""
    google_model: str = "gemini-2.0-flash"
    max_tokens: int = 1000

    @property
    def model(self) -> str:
        """Model name for the selected provider"""
        return {
            "anthropic": self.anthropic_model,
            "openai": self.openai_model,
            "google": self.google_model,
        }.get(self.provider, "")


@dataclass
class StoreConfig:
    """Qdrant ticket store configuration"""
    url: str = "http://localhost:6333"
    api_key: str = ""
    collection: str = "SupportTicket"
    timeout: int = 10


@dataclass
class EmbeddingConfig:
    """Embedding model configuration"""
    model: str = "sentence-transformers/all-MiniLM-L6-v2"


@dataclass
class RetrieverConfig:
    """Retrieval engine configuration"""
    limit: int = 10
    max_keywords: int = 3


@dataclass
class AnalyticsConfig:
    """Analytics engine configuration"""
    fetch_limit: int = 10000


@dataclass
class AssistantConfig:
    """Main configuration"""
    llm: LLMConfig = field(default_factory=LLMConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    retriever: RetrieverConfig = field(default_factory=RetrieverConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_llm_config(data: dict) -> LLMConfig:
    """Parse llm section from config dict"""
    llm_data = data.get("llm", {})
    defaults = LLMConfig()
    return LLMConfig(
        provider=llm_data.get("provider", defaults.provider),
        anthropic_api_key=llm_data.get("anthropic_api_key", ""),
        anthropic_model=llm_data.get("anthropic_model", defaults.anthropic_model),
        openai_api_key=llm_data.get("openai_api_key", ""),
        openai_model=llm_data.get("openai_model", defaults.openai_model),
        google_api_key=llm_data.get("google_api_key", ""),
        google_model=llm_data.get("google_model", defaults.google_model),
        max_tokens=llm_data.get("max_tokens", defaults.max_tokens),
    )


def _parse_store_config(data: dict) -> StoreConfig:
    """Parse store section from config dict"""
    store_data = data.get("store", {})
    defaults = StoreConfig()
    return StoreConfig(
        url=store_data.get("url", defaults.url),
        api_key=store_data.get("api_key", ""),
        collection=store_data.get("collection", defaults.collection),
        timeout=store_data.get("timeout", defaults.timeout),
    )


def _parse_embedding_config(data: dict) -> EmbeddingConfig:
    """Parse embedding section from config dict"""
    embedding_data = data.get("embedding", {})
    return EmbeddingConfig(
        model=embedding_data.get("model", EmbeddingConfig().model),
    )


def _parse_retriever_config(data: dict) -> RetrieverConfig:
    """Parse retriever section from config dict"""
    retriever_data = data.get("retriever", {})
    return RetrieverConfig(
        limit=retriever_data.get("limit", 10),
        max_keywords=retriever_data.get("max_keywords", 3),
    )


def _parse_analytics_config(data: dict) -> AnalyticsConfig:
    """Parse analytics section from config dict"""
    analytics_data = data.get("analytics", {})
    return AnalyticsConfig(
        fetch_limit=analytics_data.get("fetch_limit", 10000),
    )


def load_config() -> AssistantConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.support_assistant/config.json)
    3. Default values
    """
    config = AssistantConfig()

    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.llm = _parse_llm_config(data)
            config.store = _parse_store_config(data)
            config.embedding = _parse_embedding_config(data)
            config.retriever = _parse_retriever_config(data)
            config.analytics = _parse_analytics_config(data)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file: %s", e)

    if os.getenv("QDRANT_URL"):
        config.store.url = os.getenv("QDRANT_URL")
    if os.getenv("QDRANT_API_KEY"):
        config.store.api_key = os.getenv("QDRANT_API_KEY")
    if os.getenv("TICKET_COLLECTION"):
        config.store.collection = os.getenv("TICKET_COLLECTION")
    if os.getenv("EMBEDDING_MODEL"):
        config.embedding.model = os.getenv("EMBEDDING_MODEL")
    if os.getenv("RETRIEVER_LIMIT"):
        config.retriever.limit = int(os.getenv("RETRIEVER_LIMIT"))

    # LLM env var overrides (track env-sourced keys so they are never saved)
    _env_llm_map = {
        "LLM_PROVIDER": "provider",
        "ANTHROPIC_API_KEY": "anthropic_api_key",
        "ANTHROPIC_MODEL": "anthropic_model",
        "OPENAI_API_KEY": "openai_api_key",
        "OPENAI_MODEL": "openai_model",
        "GOOGLE_API_KEY": "google_api_key",
        "GEMINI_API_KEY": "google_api_key",
        "GOOGLE_MODEL": "google_model",
    }
    for env_var, attr in _env_llm_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.llm, attr, val)
            config._env_sourced_keys.add(attr)

    return config


def save_config(config: AssistantConfig) -> None:
    """Save configuration to file.

    API key fields that were sourced from environment variables are written
    as empty strings so that secrets are not persisted to disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())

    llm_section = {
        "provider": config.llm.provider,
        "anthropic_api_key": config.llm.anthropic_api_key,
        "anthropic_model": config.llm.anthropic_model,
        "openai_api_key": config.llm.openai_api_key,
        "openai_model": config.llm.openai_model,
        "google_api_key": config.llm.google_api_key,
        "google_model": config.llm.google_model,
        "max_tokens": config.llm.max_tokens,
    }
    for key in ("anthropic_api_key", "openai_api_key", "google_api_key"):
        if key in env_sourced:
            llm_section[key] = ""

    data = {
        "llm": llm_section,
        "store": {
            "url": config.store.url,
            "api_key": config.store.api_key,
            "collection": config.store.collection,
            "timeout": config.store.timeout,
        },
        "embedding": {
            "model": config.embedding.model,
        },
        "retriever": {
            "limit": config.retriever.limit,
            "max_keywords": config.retriever.max_keywords,
        },
        "analytics": {
            "fetch_limit": config.analytics.fetch_limit,
        },
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)
