"""Tests for duration normalization."""

import pytest

from attache.discovery.durations import normalize_duration


def test_milliseconds_get_unit_suffix():
    assert normalize_duration(1500) == "1500ms"
    assert normalize_duration(0) == "0ms"


def test_strings_pass_through_unchanged():
    assert normalize_duration("5s") == "5s"
    assert normalize_duration("not-validated") == "not-validated"


def test_bool_is_rejected():
    with pytest.raises(TypeError):
        normalize_duration(True)
