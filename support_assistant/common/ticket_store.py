"""
Ticket Store Client

Wraps a Qdrant collection of support tickets and exposes the three query
shapes the retriever cascades through:

- semantic_search: nearest-neighbour query over ticket embeddings
- filter_search: structured (non-vector) query through the query API
- fetch_objects: raw scroll over payloads, bypassing the query planner,
  optionally narrowed by a client-side predicate

Every failure is translated into the shared error taxonomy:
TransportUnavailable, EmbeddingUnavailable or ServiceError.
"""

import logging
from typing import Any, Callable, Iterable, List, Optional, TypeVar

import httpx
from pydantic import ValidationError
from qdrant_client import QdrantClient, models
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse

from .embedding_service import EmbeddingService
from .errors import EmbeddingUnavailable, ServiceError, TransportUnavailable
from .schemas import Ticket

logger = logging.getLogger("support_assistant.common.ticket_store")

T = TypeVar("T")

# Payload keys written by the ticket import pipeline
TICKET_ID_FIELD = "ticketId"
SUBJECT_FIELD = "ticketSubject"
DESCRIPTION_FIELD = "ticketDescription"
PRODUCT_FIELD = "productPurchased"

KEYWORD_FIELDS = (SUBJECT_FIELD, DESCRIPTION_FIELD, PRODUCT_FIELD)


def tenant_condition(tenant: str) -> models.FieldCondition:
    """Exact match on the product (tenant) field."""
    return models.FieldCondition(key=PRODUCT_FIELD, match=models.MatchValue(value=tenant))


def tenant_filter(tenant: Optional[str]) -> Optional[models.Filter]:
    """Filter scoping a query to one tenant, or None for a global query."""
    if not tenant:
        return None
    return models.Filter(must=[tenant_condition(tenant)])


def keyword_filter(keywords: Iterable[str], tenant: Optional[str] = None) -> models.Filter:
    """
    Build the indexed keyword filter.

    A ticket matches when ANY keyword appears as a word in its subject,
    description or product, AND (when given) its product equals the tenant.
    Matching goes through the lowercase full-text indexes created by
    ensure_text_indexes(), so it finds whole words only; substring matches
    ("phone" in "iPhone") need Ticket.mentions_any over a tenant scroll.
    """
    should = [
        models.FieldCondition(key=field_name, match=models.MatchText(text=keyword))
        for keyword in keywords
        for field_name in KEYWORD_FIELDS
    ]
    must = [tenant_condition(tenant)] if tenant else None
    return models.Filter(must=must, should=should or None)


class TicketStore:
    """
    Read-only access to the ticket collection.

    Uses the synchronous QdrantClient; async callers run these methods
    through asyncio.to_thread.
    """

    def __init__(
        self,
        client: QdrantClient,
        collection: str,
        embedding_service: Optional[EmbeddingService] = None,
    ):
        """
        Initialize ticket store.

        Args:
            client: Connected Qdrant client
            collection: Ticket collection name
            embedding_service: For embedding semantic queries
        """
        self._client = client
        self._collection = collection
        self._embedding = embedding_service

    @classmethod
    def from_config(cls, store_config, embedding_service: Optional[EmbeddingService] = None) -> "TicketStore":
        """Create a store from a StoreConfig section."""
        client = QdrantClient(
            url=store_config.url,
            api_key=store_config.api_key or None,
            timeout=store_config.timeout,
        )
        return cls(client, store_config.collection, embedding_service)

    @property
    def collection(self) -> str:
        return self._collection

    def semantic_search(self, query_text: str, tenant: Optional[str] = None, limit: int = 10) -> List[Ticket]:
        """
        Nearest-neighbour search over ticket embeddings.

        Raises:
            EmbeddingUnavailable: the query could not be vectorized
            TransportUnavailable: the store is unreachable
            ServiceError: the store rejected the query
        """
        if self._embedding is None:
            raise EmbeddingUnavailable("No embedding service configured")

        query_vector = self._embedding.embed_single(query_text)

        response = self._call(
            "semantic_search",
            lambda: self._client.query_points(
                collection_name=self._collection,
                query=query_vector,
                query_filter=tenant_filter(tenant),
                limit=limit,
                with_payload=True,
                with_vectors=False,
            ),
        )
        return self._to_tickets(response.points)

    def filter_search(self, query_filter: Optional[models.Filter], limit: int = 10) -> List[Ticket]:
        """Structured (non-vector) search through the query API."""
        response = self._call(
            "filter_search",
            lambda: self._client.query_points(
                collection_name=self._collection,
                query_filter=query_filter,
                limit=limit,
                with_payload=True,
                with_vectors=False,
            ),
        )
        return self._to_tickets(response.points)

    def fetch_objects(
        self,
        query_filter: Optional[models.Filter],
        limit: int = 10,
        predicate: Optional[Callable[[Ticket], bool]] = None,
        page_size: int = 256,
    ) -> List[Ticket]:
        """
        Raw payload scroll with a filter; the lowest-level read primitive.

        With a predicate, the scroll continues page by page, keeping only the
        tickets it accepts, until ``limit`` are collected or the filtered
        collection is exhausted.
        """
        tickets: List[Ticket] = []
        offset = None

        while len(tickets) < limit:
            batch = page_size if predicate is not None else limit - len(tickets)
            points, offset = self._call(
                "fetch_objects",
                lambda: self._client.scroll(
                    collection_name=self._collection,
                    scroll_filter=query_filter,
                    limit=batch,
                    offset=offset,
                    with_payload=True,
                    with_vectors=False,
                ),
            )
            page = self._to_tickets(points)
            if predicate is not None:
                page = [ticket for ticket in page if predicate(ticket)]
            tickets.extend(page)
            if offset is None or not points:
                break

        return tickets[:limit]

    def fetch_all(self, tenant: Optional[str] = None, limit: int = 10000, page_size: int = 256) -> List[Ticket]:
        """
        Scan every ticket for a tenant (or all tenants), up to ``limit``.

        Pages are read in point-id order so repeated scans over an unchanged
        collection return the same sequence.
        """
        query_filter = tenant_filter(tenant)
        tickets: List[Ticket] = []
        offset = None

        while len(tickets) < limit:
            batch = min(page_size, limit - len(tickets))
            points, offset = self._call(
                "fetch_all",
                lambda: self._client.scroll(
                    collection_name=self._collection,
                    scroll_filter=query_filter,
                    limit=batch,
                    offset=offset,
                    with_payload=True,
                    with_vectors=False,
                ),
            )
            tickets.extend(self._to_tickets(points))
            if offset is None or not points:
                break

        return tickets[:limit]

    def ensure_text_indexes(self) -> None:
        """Create the payload indexes the keyword tiers rely on."""
        text_index = models.TextIndexParams(
            type=models.TextIndexType.TEXT,
            tokenizer=models.TokenizerType.WORD,
            lowercase=True,
        )
        for field_name in KEYWORD_FIELDS:
            self._call(
                "create_text_index",
                lambda name=field_name: self._client.create_payload_index(
                    collection_name=self._collection,
                    field_name=name,
                    field_schema=text_index,
                ),
            )
        logger.info("Text indexes ensured on '%s'", self._collection)

    def _call(self, operation: str, fn: Callable[[], T]) -> T:
        """Run a Qdrant call and translate its failures."""
        try:
            return fn()
        except ResponseHandlingException as e:
            source = getattr(e, "source", None)
            if isinstance(source, (httpx.TransportError, ConnectionError)):
                raise TransportUnavailable(f"{operation}: store unreachable: {source}") from e
            raise ServiceError(f"{operation}: bad response from store: {e}") from e
        except (httpx.TransportError, ConnectionError) as e:
            raise TransportUnavailable(f"{operation}: store unreachable: {e}") from e
        except UnexpectedResponse as e:
            raise ServiceError(f"{operation}: store returned {e.status_code}: {e}") from e
        except Exception as e:
            raise ServiceError(f"{operation}: {e}") from e

    def _to_tickets(self, points: Iterable[Any]) -> List[Ticket]:
        """Convert scored/record points into Tickets, skipping malformed payloads."""
        tickets = []
        for point in points:
            payload = dict(point.payload or {})
            payload.setdefault(TICKET_ID_FIELD, payload.get("ticket_id", point.id))
            try:
                tickets.append(Ticket.from_payload(payload))
            except ValidationError as e:
                logger.warning("Skipping malformed ticket payload %s: %s", point.id, e)
        return tickets
