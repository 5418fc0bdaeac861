"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import threading

import pytest


@pytest.fixture
def mock_settings(tmp_path):
    """Provide mock settings for testing."""
    from mail_provenance.config import Settings

    return Settings(
        imap_host="imap.test",
        imap_port=993,
        imap_username="inbox@example.com",
        imap_password="s3cret",
        imap_timeout=5.0,
        db_path=tmp_path / "records.sqlite3",
        log_level="DEBUG",
        debug=True,
    )


@pytest.fixture
def repository(tmp_path):
    """Provide an initialized record repository in a temporary directory."""
    from mail_provenance.storage import EmailRecordRepository

    repo = EmailRecordRepository(tmp_path / "records.sqlite3")
    repo.initialize()
    return repo


@pytest.fixture
def gmail_relay_message() -> bytes:
    """A message relayed through two hops and sent from a Gmail address."""
    return (
        b"Received: from a.test by b.test\r\n"
        b"Received: from c.test by d.test\r\n"
        b"From: user@gmail.com\r\n"
        b"To: inbox@example.com\r\n"
        b"Subject: Relay test\r\n"
        b"Date: Mon, 06 Jan 2025 10:15:00 +0000\r\n"
        b"Message-ID: <relay-test@gmail.com>\r\n"
        b"Content-Type: text/plain; charset=utf-8\r\n"
        b"\r\n"
        b"Hello from the relay test."
    )


@pytest.fixture
def local_message() -> bytes:
    """A message delivered without crossing any relay."""
    return (
        b"From: Local Admin <admin@example.com>\r\n"
        b"To: inbox@example.com\r\n"
        b"Subject: Local delivery\r\n"
        b"\r\n"
        b"Delivered on the same server."
    )


class FakeSocket:
    """Records the shutdown a cancelled session performs on the raw socket."""

    def __init__(self, server: "FakeImapServer") -> None:
        self.server = server
        self.shutdown_how: int | None = None

    def shutdown(self, how: int) -> None:
        self.shutdown_how = how
        self.server.release.set()


class FakeImapConnection:
    """Stand-in for ``imaplib.IMAP4_SSL`` driven by a ``FakeImapServer``."""

    def __init__(self, server: "FakeImapServer", host, port, ssl_context=None, timeout=None):
        self.server = server
        self.host = host
        self.port = port
        self.ssl_context = ssl_context
        self.timeout = timeout
        self.commands: list[tuple] = []
        self.logged_out = False
        self.shut_down = False
        self.sock = FakeSocket(server)

    def login(self, user, password):
        self.commands.append(("login", user))
        if self.server.login_error is not None:
            raise self.server.login_error
        return "OK", [b"LOGIN completed"]

    def select(self, mailbox="INBOX", readonly=False):
        self.commands.append(("select", mailbox, readonly))
        return self.server.select_status, [b"3"]

    def search(self, charset, *criteria):
        self.commands.append(("search", charset, *criteria))
        if self.server.block_search:
            self.server.search_entered.set()
            self.server.release.wait(timeout=5)
            raise OSError("socket closed")
        if self.server.search_error is not None:
            raise self.server.search_error
        return self.server.search_status, [self.server.unseen]

    def fetch(self, message_set, message_parts):
        self.commands.append(("fetch", message_set, message_parts))
        if self.server.fetch_error is not None:
            raise self.server.fetch_error
        return self.server.fetch_status, self.server.fetch_response(message_set)

    def logout(self):
        self.commands.append(("logout",))
        self.logged_out = True
        return "BYE", [b"LOGOUT"]

    def shutdown(self):
        self.shut_down = True
        self.server.release.set()


class FakeImapServer:
    """Configurable fake IMAP server; call it like ``imaplib.IMAP4_SSL``."""

    def __init__(self) -> None:
        self.unseen = b""
        self.messages: dict[str, list[bytes]] = {}
        self.connect_error: Exception | None = None
        self.login_error: Exception | None = None
        self.search_error: Exception | None = None
        self.fetch_error: Exception | None = None
        self.select_status = "OK"
        self.search_status = "OK"
        self.fetch_status = "OK"
        self.block_search = False
        self.search_entered = threading.Event()
        self.release = threading.Event()
        self.connections: list[FakeImapConnection] = []

    def __call__(self, host, port, ssl_context=None, timeout=None):
        if self.connect_error is not None:
            raise self.connect_error
        conn = FakeImapConnection(self, host, port, ssl_context=ssl_context, timeout=timeout)
        self.connections.append(conn)
        return conn

    def fetch_response(self, message_set: str) -> list:
        chunks = self.messages.get(message_set, [])
        return [(f"{message_set} (BODY[] {{{len(c)}}}".encode(), c) for c in chunks] + [b")"]

    @property
    def connection(self) -> FakeImapConnection:
        assert len(self.connections) == 1
        return self.connections[0]


@pytest.fixture
def fake_imap(monkeypatch) -> FakeImapServer:
    """Replace ``imaplib.IMAP4_SSL`` with a fake server."""
    import imaplib

    server = FakeImapServer()
    monkeypatch.setattr(imaplib, "IMAP4_SSL", server)
    return server
