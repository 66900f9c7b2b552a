"""Tests for data models and the error taxonomy."""

import pytest

from dualsub.core.errors import ErrorKind, classify_message, kind_for_status
from dualsub.core.models import (
    Failure,
    SubtitleCue,
    Success,
    TranslationUnit,
    from_wire,
    normalize_key,
    normalize_text,
    to_wire,
)


class TestNormalization:
    def test_normalize_key_folds_and_lowers(self):
        assert normalize_key("  Hei\nMAAILMA   kaikki ") == "hei maailma kaikki"

    def test_normalize_key_idempotent(self):
        for text in ["Hei\n\nmaailma", "  A  b ", "Already normal"]:
            once = normalize_key(text)
            assert normalize_key(once) == once

    def test_normalize_text_keeps_case(self):
        assert normalize_text("Hei\n  Maailma") == "Hei Maailma"

    def test_unit_keys_equal_for_same_line(self):
        a = TranslationUnit.from_text("Hei\nmaailma")
        b = TranslationUnit.from_text("hei maailma")
        assert a.normalized_key == b.normalized_key


class TestSubtitleCue:
    def test_start_must_precede_end(self):
        with pytest.raises(ValueError):
            SubtitleCue(start=2.0, end=2.0, text="x")

    def test_contains_is_half_open(self):
        cue = SubtitleCue(start=10.0, end=12.0, text="x")
        assert cue.contains(10.0)
        assert cue.contains(11.99)
        assert not cue.contains(12.0)


class TestWire:
    def test_success_round_trip(self):
        assert to_wire(Success(["a", None])) == (True, ["a", None])
        assert from_wire((True, ["a", None])) == Success(["a", None])

    def test_failure_kind_recovered_from_message(self):
        assert to_wire(Failure(ErrorKind.AUTH, "Invalid DeepL API key")) == (
            False,
            "Invalid DeepL API key",
        )
        assert from_wire((False, "Invalid DeepL API key")).kind == ErrorKind.AUTH
        assert from_wire((False, "Claude rate limit exceeded")).kind == ErrorKind.RATE_LIMITED
        assert (
            from_wire((False, "Extension context invalidated")).kind
            == ErrorKind.CHANNEL_UNAVAILABLE
        )


class TestErrors:
    def test_only_rate_limited_and_transient_are_retryable(self):
        retryable = {kind for kind in ErrorKind if kind.retryable}
        assert retryable == {ErrorKind.RATE_LIMITED, ErrorKind.TRANSIENT}

    def test_status_mapping(self):
        assert kind_for_status(401) == ErrorKind.AUTH
        assert kind_for_status(403) == ErrorKind.AUTH
        assert kind_for_status(429) == ErrorKind.RATE_LIMITED
        assert kind_for_status(500) == ErrorKind.TRANSIENT

    def test_classify_network(self):
        assert classify_message("DeepL request timed out") == ErrorKind.NETWORK
        assert classify_message("something odd") == ErrorKind.TRANSIENT
