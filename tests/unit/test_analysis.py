"""Unit tests for Received chain extraction and provider classification."""

from __future__ import annotations

import pytest

from mail_provenance.analysis import ESP_RULES, classify, describe_hop, extract_chain
from mail_provenance.models import EspLabel, HeaderLine


def _lines(*pairs: tuple[str, str]) -> list[HeaderLine]:
    return [HeaderLine(key=key, line=line) for key, line in pairs]


class TestExtractChain:
    """Test suite for extract_chain."""

    def test_keeps_only_received_in_original_order(self) -> None:
        headers = _lines(
            ("received", "Received: from hop3 by hop4"),
            ("from", "From: a@b.test"),
            ("received", "Received: from hop1 by hop2"),
            ("x-received", "X-Received: by 10.0.0.1"),
            ("subject", "Subject: hi"),
        )

        assert extract_chain(headers) == [
            "Received: from hop3 by hop4",
            "Received: from hop1 by hop2",
        ]

    def test_duplicates_are_kept(self) -> None:
        headers = _lines(
            ("received", "Received: from same by same"),
            ("received", "Received: from same by same"),
        )

        assert len(extract_chain(headers)) == 2

    def test_no_received_headers_gives_empty_chain(self) -> None:
        headers = _lines(("from", "From: a@b.test"), ("to", "To: c@d.test"))

        assert extract_chain(headers) == []

    def test_empty_input(self) -> None:
        assert extract_chain([]) == []


class TestDescribeHop:
    """Test suite for describe_hop."""

    def test_extracts_tokens_from_folded_line(self) -> None:
        line = (
            "Received: from mail.sender.test (mail.sender.test [192.0.2.10])\r\n"
            "\tby mx.receiver.test with ESMTPS id abc123;\r\n"
            "\tMon, 06 Jan 2025 10:15:00 +0000"
        )

        hop = describe_hop(line)

        assert hop.from_host == "mail.sender.test"
        assert hop.by_host == "mx.receiver.test"
        assert hop.protocol == "ESMTPS"
        assert hop.ip == "192.0.2.10"
        assert "\n" not in hop.raw

    def test_missing_tokens_are_none(self) -> None:
        hop = describe_hop("Received: (qmail 1234 invoked by uid 89)")

        assert hop.from_host is None
        assert hop.protocol is None
        assert hop.ip is None

    def test_word_boundaries_are_respected(self) -> None:
        hop = describe_hop("Received: from nearby.test by relay.test")

        assert hop.from_host == "nearby.test"
        assert hop.by_host == "relay.test"


class TestClassify:
    """Test suite for the provider classifier."""

    @pytest.mark.parametrize(
        ("from_text", "expected"),
        [
            ("user@gmail.com", EspLabel.GMAIL),
            ("Jane Doe <jane@outlook.com>", EspLabel.OUTLOOK),
            ("support@zoho.com", EspLabel.ZOHO),
            ("bounce@eu-west-1.amazonses.com", EspLabel.AMAZON_SES),
            ("someone@example.org", EspLabel.UNKNOWN),
            ("", EspLabel.UNKNOWN),
            (None, EspLabel.UNKNOWN),
        ],
    )
    def test_labels(self, from_text, expected) -> None:
        assert classify(from_text) == expected

    def test_gmail_wins_regardless_of_other_content(self) -> None:
        text = "Outlook Team <team@outlook.com>, via zoho.com and amazonses.com, user@gmail.com"

        assert classify(text) == EspLabel.GMAIL

    def test_rule_order_is_fixed(self) -> None:
        assert [label for _, label in ESP_RULES] == [
            EspLabel.GMAIL,
            EspLabel.OUTLOOK,
            EspLabel.ZOHO,
            EspLabel.AMAZON_SES,
        ]
        assert classify("a@outlook.com b@zoho.com") == EspLabel.OUTLOOK

    def test_match_ignores_case(self) -> None:
        assert classify("USER@GMAIL.COM") == EspLabel.GMAIL

    @pytest.mark.parametrize(
        "from_text",
        ["", "x", "gmail", "@", "Ω <ω@example.test>", "outlook.co", "a" * 1000],
    )
    def test_total_and_deterministic(self, from_text: str) -> None:
        first = classify(from_text)

        assert first in set(EspLabel)
        assert classify(from_text) == first

    def test_custom_rule_table(self) -> None:
        rules = (("example.org", EspLabel.ZOHO),)

        assert classify("a@example.org", rules=rules) == EspLabel.ZOHO
        assert classify("a@gmail.com", rules=rules) == EspLabel.UNKNOWN
