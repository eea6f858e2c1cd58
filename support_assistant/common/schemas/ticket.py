"""
Support Ticket Schema

Tickets are owned by the ticket store and read-only to the assistant.
Store payloads may use the snake_case field names below or the camelCase
names written by the import pipeline (ticketId, productPurchased, ...).
"""

from typing import Any, Dict, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Ticket(BaseModel):
    """A single customer-support ticket"""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    ticket_id: str = Field(..., alias="ticketId")
    subject: str = Field(default="", alias="ticketSubject")
    description: str = Field(default="", alias="ticketDescription")
    resolution: Optional[str] = None
    status: Optional[str] = Field(default=None, alias="ticketStatus")
    priority: Optional[str] = Field(default=None, alias="ticketPriority")
    product: str = Field(default="", alias="productPurchased")  # doubles as tenant key
    first_response_time: Optional[str] = Field(default=None, alias="firstResponseTime")
    resolution_hours: Optional[float] = Field(default=None, alias="timeToResolution")
    satisfaction: Optional[float] = Field(default=None, alias="customerSatisfactionRating")

    @field_validator("ticket_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        # The import pipeline stores numeric IDs
        if isinstance(value, (dict, list, tuple)) or value is None:
            raise ValueError("ticket id must be a string or number")
        return str(value)

    @field_validator("subject", "description", "product", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("resolution", "status", "priority", "first_response_time", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @field_validator("resolution_hours", "satisfaction", mode="before")
    @classmethod
    def _parse_number(cls, value: Any) -> Optional[float]:
        if value is None or value == "":
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Ticket":
        """Build a Ticket from a raw store payload."""
        return cls.model_validate(payload)

    def mentions_any(self, keywords: Iterable[str]) -> bool:
        """True when any keyword is a case-insensitive substring of subject, description or product."""
        fields = (self.subject.lower(), self.description.lower(), self.product.lower())
        return any(keyword.lower() in text for keyword in keywords for text in fields)

    def to_context_block(self) -> str:
        """Render every field for an LLM context window."""
        return (
            f"Ticket ID: {self.ticket_id}\n"
            f"Subject: {self.subject}\n"
            f"Description: {self.description}\n"
            f"Resolution: {self.resolution or 'No resolution provided'}\n"
            f"Status: {self.status or 'Unknown'}\n"
            f"Priority: {self.priority or 'Unknown'}\n"
            f"Product: {self.product}"
        )
