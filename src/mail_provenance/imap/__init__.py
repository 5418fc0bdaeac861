"""IMAP mailbox access."""

from .session import FetchedMessage, ImapCredentials, MailboxSession

__all__ = ["FetchedMessage", "ImapCredentials", "MailboxSession"]
