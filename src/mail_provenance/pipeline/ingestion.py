"""Fetch-and-analyse pipeline.

Each call to ``ingest_latest_unread`` runs exactly one live IMAP session:
connect, search for unread mail, fetch the newest match, disconnect. The
fetched message is parsed, its Received chain and sending provider are derived,
and the resulting record is persisted and returned.

Messages are not deduplicated. If the same message is still unread on the next
call it is fetched, analysed and stored again.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

import structlog

from mail_provenance.analysis import classify, extract_chain
from mail_provenance.config import Settings
from mail_provenance.imap import MailboxSession
from mail_provenance.models import EmailRecord, ParsedMessage
from mail_provenance.parsing import make_snippet, parse_message
from mail_provenance.storage import EmailRecordRepository

logger = structlog.get_logger()

SessionFactory = Callable[[], MailboxSession]


def build_record(
    parsed: ParsedMessage,
    raw: bytes,
    *,
    received_at: datetime | None = None,
) -> EmailRecord:
    """Assemble an (unsaved) record from a parsed message.

    Args:
        parsed: The parsed message.
        raw: The original message bytes, kept verbatim.
        received_at: Fallback date when the message has no usable Date header.
            Defaults to now.

    Returns:
        EmailRecord: Record without ``id``/``created_at``.
    """

    chain = extract_chain(parsed.header_lines)
    return EmailRecord(
        subject=parsed.subject,
        sender=parsed.sender,
        recipient=parsed.recipient,
        date=parsed.date or received_at or datetime.now(timezone.utc),
        snippet=make_snippet(parsed.text_body),
        receiving_chain=chain,
        esp=classify(parsed.sender),
        hops=len(chain),
        raw=raw,
        message_id=parsed.message_id,
    )


class IngestionPipeline:
    """Connects a mailbox session, the parser, the analysers and the store."""

    def __init__(
        self,
        repository: EmailRecordRepository,
        session_factory: SessionFactory | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            repository: Store receiving the analysed records.
            session_factory: Returns a fresh MailboxSession per call. If None,
                sessions are built from settings.
            settings: Application settings. If None, uses default settings.
        """
        from mail_provenance.config import get_settings

        self.settings = settings or get_settings()
        self.repository = repository
        self._session_factory = session_factory or (
            lambda: MailboxSession.from_settings(self.settings)
        )

    async def ingest_latest_unread(self) -> EmailRecord | None:
        """Fetch, analyse and store the newest unread message.

        Returns:
            The persisted record, or None when there is no unread message.

        Raises:
            MailboxError: If the IMAP session fails.
            MessageParseError: If the fetched message cannot be parsed.
            ConfigurationError: If mailbox settings are incomplete.
        """

        session = self._session_factory()
        fetched = await session.fetch_newest_unread()
        if fetched is None:
            logger.info("ingestion_no_unread_message")
            return None

        parsed = parse_message(fetched.data)
        record = build_record(parsed, fetched.data)
        saved = self.repository.save(record)

        logger.info(
            "ingestion_complete",
            record_id=saved.id,
            sequence=fetched.sequence,
            esp=saved.esp.value,
            hops=saved.hops,
        )
        return saved

    def history(self, limit: int | None = None) -> list[EmailRecord]:
        """Return the most recent records, newest first.

        Raises:
            ValueError: If ``limit`` is less than 1.
        """

        if limit is None:
            limit = self.settings.history_limit
        if limit < 1:
            raise ValueError(f"History limit must be at least 1, got {limit}")
        return self.repository.recent(limit=limit)
