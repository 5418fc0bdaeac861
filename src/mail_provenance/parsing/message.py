"""Parse raw RFC 5322 messages into ``ParsedMessage``.

Uses the stdlib ``email`` package with ``policy.default`` so encoded words in
headers are decoded and ``get_body`` can pick the plain-text alternative out of
multipart messages.
"""

from __future__ import annotations

from datetime import datetime, timezone
from email import errors, policy
from email.header import decode_header, make_header
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import parsedate_to_datetime

import structlog

from mail_provenance.exceptions import MessageParseError
from mail_provenance.models import HeaderLine, ParsedMessage

logger = structlog.get_logger()

SNIPPET_LENGTH = 200

_PARSER_ERRORS = (errors.MessageError, ValueError, TypeError, IndexError, LookupError)


def _source_text(value: str) -> str:
    # BytesParser keeps non-ASCII bytes as surrogate escapes; turn them back into text.
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return value.encode("utf-8", "surrogateescape").decode("utf-8", "replace")
    return value


def _header_lines(message: EmailMessage) -> list[HeaderLine]:
    return [
        HeaderLine(key=name.strip().lower(), line=f"{name}: {_source_text(value)}")
        for name, value in message.raw_items()
    ]


def _raw_header(message: EmailMessage, name: str) -> str | None:
    # First occurrence, undecoded, so a malformed value cannot trip the header classes.
    for key, value in message.raw_items():
        if key.strip().lower() == name:
            return _source_text(value)
    return None


def _decoded_header(message: EmailMessage, name: str) -> str:
    try:
        value = message.get(name)
        if value is None:
            return ""
        return _source_text(str(value))
    except _PARSER_ERRORS as exc:
        # The structured address parser chokes on sloppy headers; keep the raw text.
        logger.debug("message_header_unparsed", header=name, error=str(exc))
        raw = " ".join((_raw_header(message, name) or "").split())
        try:
            return str(make_header(decode_header(raw)))
        except _PARSER_ERRORS:
            return raw


def _parse_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, OverflowError, IndexError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _plain_text_body(message: EmailMessage) -> str | None:
    part = message.get_body(preferencelist=("plain",))
    if part is None:
        return None
    try:
        return part.get_content()
    except (LookupError, UnicodeError):
        # Unknown or lying charset declaration.
        payload = part.get_payload(decode=True) or b""
        return payload.decode("utf-8", errors="replace")


def make_snippet(text: str | None, limit: int = SNIPPET_LENGTH) -> str:
    """Return the first ``limit`` characters of ``text`` ("" when there is none)."""
    if not text:
        return ""
    return text[:limit]


def parse_message(raw: bytes) -> ParsedMessage:
    """Parse a complete raw message.

    Args:
        raw: The message bytes exactly as fetched from the server.

    Returns:
        ParsedMessage: Decoded headers, plain-text body and ordered header lines.

    Raises:
        MessageParseError: If the input is empty, has no header section, or the
            parser fails on it.
    """

    if not raw or not raw.strip():
        raise MessageParseError("Message is empty")

    try:
        message = BytesParser(policy=policy.default).parsebytes(raw)
        header_lines = _header_lines(message)
        if not header_lines:
            raise MessageParseError("Message has no header lines")

        parsed = ParsedMessage(
            subject=_decoded_header(message, "subject"),
            sender=_decoded_header(message, "from"),
            recipient=_decoded_header(message, "to"),
            date=_parse_date(_raw_header(message, "date")),
            text_body=_plain_text_body(message),
            message_id=(_raw_header(message, "message-id") or "").strip() or None,
            header_lines=header_lines,
        )
    except _PARSER_ERRORS as exc:
        logger.warning("message_parse_failed", error=str(exc), size=len(raw))
        raise MessageParseError(f"Unable to parse message: {exc}") from exc

    if message.defects:
        logger.debug(
            "message_parse_defects",
            defects=[type(d).__name__ for d in message.defects],
        )

    return parsed
