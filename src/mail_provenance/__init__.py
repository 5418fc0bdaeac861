"""Mail Provenance - where did this email come from?

This package fetches the newest unread message from an IMAP mailbox,
reconstructs its Received relay chain, guesses the sending email service
provider and keeps a history of the analysed messages.
"""

__version__ = "0.1.0"

from mail_provenance.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__"]
