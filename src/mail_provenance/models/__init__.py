"""Data models for Mail Provenance.

This module contains Pydantic models for data validation and serialization.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EspLabel(str, Enum):
    """Email service provider classification result."""

    GMAIL = "Gmail"
    OUTLOOK = "Outlook"
    ZOHO = "Zoho"
    AMAZON_SES = "Amazon SES"
    UNKNOWN = "Unknown"


class HeaderLine(BaseModel):
    """A single raw header line as it appeared in the message."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(description="Lower-cased header name")
    line: str = Field(description="Raw header line, name included, folding preserved")


class ParsedMessage(BaseModel):
    """Structured view of a raw RFC 5322 message."""

    subject: str = Field(default="", description="Decoded Subject header")
    sender: str = Field(default="", description="Decoded From header text")
    recipient: str = Field(default="", description="Decoded To header text")
    date: Optional[datetime] = Field(default=None, description="Parsed Date header")
    text_body: Optional[str] = Field(default=None, description="Decoded text/plain body")
    message_id: Optional[str] = Field(default=None, description="Message-ID header")
    header_lines: list[HeaderLine] = Field(
        default_factory=list,
        description="All header lines in original order",
    )


from mail_provenance.models.email_record import EmailRecord  # noqa: E402

__all__ = ["EmailRecord", "EspLabel", "HeaderLine", "ParsedMessage"]
