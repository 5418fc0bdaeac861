"""Custom exceptions for Mail Provenance."""


class MailProvenanceError(Exception):
    """Base exception for all Mail Provenance errors."""

    retryable: bool = False


class ConfigurationError(MailProvenanceError):
    """Exception raised for configuration related errors."""


class MailboxError(MailProvenanceError):
    """Base exception for failures talking to the IMAP server."""


class MailboxConnectionError(MailboxError):
    """Exception raised when connecting, authenticating or opening the mailbox fails."""


class MailboxSearchError(MailboxError):
    """Exception raised when the unread search command fails."""


class MailboxFetchError(MailboxError):
    """Exception raised when the message body cannot be transferred."""


class MailboxTimeoutError(MailboxError):
    """Exception raised when the IMAP server stops responding."""

    retryable = True


class MessageParseError(MailProvenanceError):
    """Exception raised when a raw message cannot be parsed."""
