"""Raw message parsing."""

from .message import SNIPPET_LENGTH, make_snippet, parse_message

__all__ = ["SNIPPET_LENGTH", "make_snippet", "parse_message"]
