"""Integration tests against a live IMAP server.

These run only when mailbox credentials are configured through the
MAIL_PROVENANCE_IMAP_* environment variables. They open the mailbox read-only
and never change message flags.
"""

import os

import pytest

from mail_provenance.config import Settings
from mail_provenance.imap import MailboxSession
from mail_provenance.parsing import parse_message

pytestmark = pytest.mark.skipif(
    not all(
        os.getenv(f"MAIL_PROVENANCE_{name}")
        for name in ("IMAP_HOST", "IMAP_USERNAME", "IMAP_PASSWORD")
    ),
    reason="live IMAP credentials not configured",
)


@pytest.mark.integration
class TestImapIntegration:
    """Integration tests for the IMAP session."""

    @pytest.mark.asyncio
    async def test_fetch_newest_unread_round_trip(self) -> None:
        """Fetch the newest unread message, if any, and parse it."""
        session = MailboxSession.from_settings(Settings())

        fetched = await session.fetch_newest_unread()

        if fetched is None:
            pytest.skip("mailbox has no unread message")
        parsed = parse_message(fetched.data)
        assert parsed.header_lines
