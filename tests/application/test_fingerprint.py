"""
Tests for fingerprint normalization and FingerprintIndex.
"""

from reffy.application.sync import (
    FingerprintIndex,
    content_fingerprint,
    normalize_body,
    normalize_title,
)


class TestNormalization:
    """Tests for title and body normalization."""

    def test_title_is_trimmed_collapsed_and_lowercased(self):
        """Whitespace runs collapse to one space."""
        assert normalize_title("  Login \t  FLOW\n") == "login flow"

    def test_body_keeps_case(self):
        """Bodies are compared case-sensitively."""
        assert normalize_body("  Draft Notes ") == "Draft Notes"

    def test_body_normalizes_crlf(self):
        """CRLF and LF bodies are equal."""
        assert normalize_body("a\r\nb\r\n") == normalize_body("a\nb")

    def test_none_is_empty(self):
        """Missing values normalize to the empty string."""
        assert normalize_title(None) == ""
        assert normalize_body(None) == ""

    def test_fingerprint_combines_title_and_body(self):
        """The composite key joins both parts."""
        assert content_fingerprint("Login Flow", "draft notes") == "login flow::draft notes"


class TestFingerprintIndex:
    """Tests for matching against an index."""

    def test_fingerprint_match_beats_title_match(self):
        """An exact content match wins over an earlier title-only match."""
        index = FingerprintIndex.build(
            [("a", "Roadmap", "other"), ("b", "Roadmap", "body")],
            lambda i: i[1],
            lambda i: i[2],
        )

        match = index.first_unclaimed("roadmap", "body", lambda i: False)

        assert match[0] == "b"

    def test_falls_back_to_title(self):
        """Without a fingerprint match the first title match is used."""
        index = FingerprintIndex.build([("a", "Roadmap", "x")], lambda i: i[1], lambda i: i[2])

        assert index.first_unclaimed("ROADMAP", "y", lambda i: False)[0] == "a"

    def test_claimed_items_are_skipped(self):
        """Claimed items never match."""
        index = FingerprintIndex.build(
            [("a", "Roadmap", "x"), ("b", "Roadmap", "x")],
            lambda i: i[1],
            lambda i: i[2],
        )

        assert index.first_unclaimed("Roadmap", "x", lambda i: i[0] == "a")[0] == "b"
        assert index.first_unclaimed("Roadmap", "x", lambda i: True) is None

    def test_has_title_ignores_claims(self):
        """has_title reports any item with the title."""
        index: FingerprintIndex[str] = FingerprintIndex()
        index.add("a", "Roadmap A", "body")

        assert index.has_title("  roadmap   a ")
        assert not index.has_title("Roadmap B")
        assert len(index) == 1
