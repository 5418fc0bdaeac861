"""Sending provider classification.

The classifier is a best-effort heuristic over the decoded ``From`` text. It is
trivially fooled by spoofed sender text and is only meant as an informational
hint, never as an authoritative provider lookup.
"""

from __future__ import annotations

from mail_provenance.models import EspLabel

# Evaluated in order; the first needle found in the From text wins.
ESP_RULES: tuple[tuple[str, EspLabel], ...] = (
    ("gmail.com", EspLabel.GMAIL),
    ("outlook.com", EspLabel.OUTLOOK),
    ("zoho.com", EspLabel.ZOHO),
    ("amazonses.com", EspLabel.AMAZON_SES),
)


def classify(from_text: str | None, rules: tuple[tuple[str, EspLabel], ...] = ESP_RULES) -> EspLabel:
    """Classify the sending provider from From header text.

    Args:
        from_text: Decoded From header text (display name and address).
        rules: Ordered ``(substring, label)`` pairs.

    Returns:
        The label of the first matching rule, or ``EspLabel.UNKNOWN``.
    """

    if not from_text:
        return EspLabel.UNKNOWN

    # Domains are case-insensitive; needles are lower-case.
    haystack = from_text.lower()
    for needle, label in rules:
        if needle in haystack:
            return label
    return EspLabel.UNKNOWN
