"""Single-shot IMAP session.

A ``MailboxSession`` owns exactly one connection for exactly one
connect/search/fetch/disconnect cycle. Sessions are never pooled or reused.

Notes:
    ``imaplib`` is synchronous. The protocol sequence runs in a worker thread
    via ``asyncio.to_thread`` so the rest of the codebase can remain
    async-friendly. Cancelling the await shuts the socket down, which unblocks
    the worker thread.
"""

from __future__ import annotations

import asyncio
import imaplib
import socket
import ssl
from dataclasses import dataclass, field

import structlog

from mail_provenance.config import Settings
from mail_provenance.exceptions import (
    ConfigurationError,
    MailboxConnectionError,
    MailboxFetchError,
    MailboxSearchError,
    MailboxTimeoutError,
)

logger = structlog.get_logger()

_IMAP_ERRORS = (imaplib.IMAP4.error, OSError)


@dataclass(frozen=True)
class ImapCredentials:
    """Everything needed to open one IMAP session."""

    host: str
    username: str
    password: str = field(repr=False)
    port: int = 993
    mailbox: str = "INBOX"
    allow_self_signed: bool = False
    timeout: float | None = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> ImapCredentials:
        """Build credentials from settings.

        Raises:
            ConfigurationError: If host, username or password is missing.
        """

        missing = [
            name
            for name, value in (
                ("imap_host", settings.imap_host),
                ("imap_username", settings.imap_username),
                ("imap_password", settings.imap_password),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                "Missing IMAP settings: "
                + ", ".join(f"MAIL_PROVENANCE_{name.upper()}" for name in missing)
            )

        assert settings.imap_host is not None
        assert settings.imap_username is not None
        assert settings.imap_password is not None
        return cls(
            host=settings.imap_host,
            username=settings.imap_username,
            password=settings.imap_password.get_secret_value(),
            port=settings.imap_port,
            mailbox=settings.imap_mailbox,
            allow_self_signed=settings.imap_allow_self_signed,
            timeout=settings.imap_timeout,
        )


@dataclass(frozen=True)
class FetchedMessage:
    """Raw bytes of the message selected by a session."""

    sequence: int
    data: bytes = field(repr=False)


def _quote_mailbox(name: str) -> str:
    if name.startswith('"') or not any(ch in name for ch in ' "\\'):
        return name
    escaped = name.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class MailboxSession:
    """One IMAP connection used to fetch the newest unread message."""

    def __init__(self, credentials: ImapCredentials) -> None:
        """Create a session.

        Args:
            credentials: Connection details, read once here.
        """

        self.credentials = credentials
        self._conn: imaplib.IMAP4_SSL | None = None
        self._used = False

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> MailboxSession:
        """Create a session from application settings."""
        from mail_provenance.config import get_settings

        return cls(ImapCredentials.from_settings(settings or get_settings()))

    async def fetch_newest_unread(self) -> FetchedMessage | None:
        """Fetch the most recently arrived unread message.

        Returns:
            The message bytes, or None when the mailbox has no unread message.

        Raises:
            MailboxConnectionError: If connecting, logging in or opening the
                mailbox fails.
            MailboxSearchError: If the UNSEEN search fails.
            MailboxFetchError: If the body transfer fails.
            MailboxTimeoutError: If the server stops responding.
        """

        try:
            return await asyncio.to_thread(self.fetch_newest_unread_sync)
        except asyncio.CancelledError:
            logger.warning("imap_session_cancelled", host=self.credentials.host)
            self.abort()
            raise

    def fetch_newest_unread_sync(self) -> FetchedMessage | None:
        """Blocking version of ``fetch_newest_unread``."""

        if self._used:
            raise RuntimeError("MailboxSession is single-use; create a new session per fetch")
        self._used = True

        try:
            conn = self._connect()
            self._open_mailbox(conn)

            sequence = self._search_newest_unseen(conn)
            if sequence is None:
                logger.info("imap_no_unread_message", mailbox=self.credentials.mailbox)
                return None

            data = self._fetch_body(conn, sequence)
            logger.info("imap_message_fetched", sequence=sequence, size=len(data))
            return FetchedMessage(sequence=sequence, data=data)
        finally:
            self._close()

    def abort(self) -> None:
        """Shut the socket down from another thread, aborting any pending read.

        Only the raw socket is touched here. The worker thread may hold the
        buffered reader's lock while it blocks in ``readline``, so closing the
        file object from this thread would wait for that read to time out. The
        worker sees EOF and runs the normal ``_close`` cleanup.
        """

        conn = self._conn
        if conn is None:
            return
        sock = getattr(conn, "sock", None)
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError as exc:
            logger.debug("imap_abort_shutdown_failed", error=str(exc))

    def _ssl_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if self.credentials.allow_self_signed:
            logger.warning("imap_tls_verification_disabled", host=self.credentials.host)
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def _connect(self) -> imaplib.IMAP4_SSL:
        creds = self.credentials
        logger.info(
            "imap_connecting",
            host=creds.host,
            port=creds.port,
            username=creds.username,
            allow_self_signed=creds.allow_self_signed,
        )

        try:
            conn = imaplib.IMAP4_SSL(
                creds.host,
                creds.port,
                ssl_context=self._ssl_context(),
                timeout=creds.timeout,
            )
        except TimeoutError as exc:
            raise MailboxTimeoutError(f"Timed out connecting to {creds.host}:{creds.port}") from exc
        except _IMAP_ERRORS as exc:
            raise MailboxConnectionError(
                f"Unable to connect to {creds.host}:{creds.port}: {exc}"
            ) from exc

        self._conn = conn

        try:
            conn.login(creds.username, creds.password)
        except TimeoutError as exc:
            raise MailboxTimeoutError(f"Timed out logging in to {creds.host}") from exc
        except _IMAP_ERRORS as exc:
            raise MailboxConnectionError(f"IMAP login failed for {creds.username}: {exc}") from exc

        return conn

    def _open_mailbox(self, conn: imaplib.IMAP4_SSL) -> None:
        # EXAMINE: read-only, so nothing here can set \Seen.
        mailbox = self.credentials.mailbox
        try:
            typ, data = conn.select(_quote_mailbox(mailbox), readonly=True)
        except TimeoutError as exc:
            raise MailboxTimeoutError(f"Timed out opening mailbox {mailbox}") from exc
        except _IMAP_ERRORS as exc:
            raise MailboxConnectionError(f"Cannot open mailbox {mailbox}: {exc}") from exc
        if typ != "OK":
            raise MailboxConnectionError(f"Cannot open mailbox {mailbox}: {data!r}")

    def _search_newest_unseen(self, conn: imaplib.IMAP4_SSL) -> int | None:
        try:
            typ, data = conn.search(None, "UNSEEN")
        except TimeoutError as exc:
            raise MailboxTimeoutError("Timed out searching for unread messages") from exc
        except _IMAP_ERRORS as exc:
            raise MailboxSearchError(f"IMAP search failed: {exc}") from exc
        if typ != "OK":
            raise MailboxSearchError(f"IMAP search failed: {data!r}")

        tokens = (data[0] or b"").split() if data else []
        try:
            sequences = [int(token) for token in tokens]
        except ValueError as exc:
            raise MailboxSearchError(f"Unexpected IMAP search response: {data!r}") from exc

        logger.info("imap_unseen_search_complete", match_count=len(sequences))
        return max(sequences) if sequences else None

    def _fetch_body(self, conn: imaplib.IMAP4_SSL, sequence: int) -> bytes:
        # BODY.PEEK leaves the \Seen flag untouched.
        try:
            typ, data = conn.fetch(str(sequence), "(BODY.PEEK[])")
        except TimeoutError as exc:
            raise MailboxTimeoutError(f"Timed out fetching message {sequence}") from exc
        except _IMAP_ERRORS as exc:
            raise MailboxFetchError(f"IMAP fetch of message {sequence} failed: {exc}") from exc
        if typ != "OK":
            raise MailboxFetchError(f"IMAP fetch of message {sequence} failed: {data!r}")

        buffer = bytearray()
        for part in data or []:
            # Literal payloads arrive as (envelope, bytes) tuples; bare bytes are
            # protocol framing such as the closing parenthesis.
            if isinstance(part, tuple) and len(part) > 1 and part[1]:
                buffer.extend(part[1])

        if not buffer:
            raise MailboxFetchError(f"IMAP fetch of message {sequence} returned no body")
        return bytes(buffer)

    def _close(self) -> None:
        conn, self._conn = self._conn, None
        if conn is None:
            return
        try:
            conn.logout()
        except (imaplib.IMAP4.error, OSError, ValueError) as exc:
            logger.warning("imap_logout_failed", error=str(exc))
            try:
                conn.shutdown()
            except (OSError, ValueError):
                logger.debug("imap_socket_already_closed")
        else:
            logger.info("imap_session_closed", host=self.credentials.host)
