"""Analysed email record model.

A record is created once per successful ingestion and never changes afterwards.
The raw message bytes are kept for audit but are excluded from every JSON
serialization.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from mail_provenance.models import EspLabel

PUBLIC_FIELDS = frozenset(
    {"subject", "sender", "recipient", "date", "snippet", "receiving_chain", "esp", "hops"}
)


class EmailRecord(BaseModel):
    """Provenance analysis of one fetched message."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int | None = Field(default=None, description="Store-assigned identifier")
    subject: str = Field(default="", description="Decoded subject")
    sender: str = Field(default="", alias="from", description="Raw From header text")
    recipient: str = Field(default="", alias="to", description="Raw To header text")
    date: datetime = Field(description="Message date, or ingestion time when absent")
    snippet: str = Field(default="", description="First 200 characters of the plain-text body")
    receiving_chain: list[str] = Field(
        default_factory=list,
        alias="receivingChain",
        description="Received header lines in original order",
    )
    esp: EspLabel = Field(default=EspLabel.UNKNOWN, description="Sending provider guess")
    hops: int = Field(ge=0, description="Number of relay hops")
    raw: bytes = Field(default=b"", exclude=True, repr=False, description="Original message")
    message_id: str | None = Field(default=None, description="Message-ID header")
    created_at: datetime | None = Field(default=None, description="Store-assigned creation time")

    @model_validator(mode="before")
    @classmethod
    def _default_hops(cls, data: Any) -> Any:
        if isinstance(data, dict) and "hops" not in data:
            chain = data.get("receiving_chain", data.get("receivingChain")) or []
            data = {**data, "hops": len(chain)}
        return data

    @model_validator(mode="after")
    def _hops_match_chain(self) -> EmailRecord:
        if self.hops != len(self.receiving_chain):
            raise ValueError(
                f"hops ({self.hops}) must equal receiving chain length "
                f"({len(self.receiving_chain)})"
            )
        return self

    def persisted(self, record_id: int, created_at: datetime) -> EmailRecord:
        """Return a copy carrying the identifiers assigned by the store."""
        return self.model_copy(update={"id": record_id, "created_at": created_at})

    def to_public_dict(self) -> dict[str, Any]:
        """Return the JSON shape exposed to API callers."""
        return self.model_dump(mode="json", by_alias=True, include=set(PUBLIC_FIELDS))
