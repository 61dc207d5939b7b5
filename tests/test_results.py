"""Tests for result aggregation and the scrobble threshold."""

from __future__ import annotations

import pytest

from scrobble_bridge.models import ServiceCallResult
from scrobble_bridge.results import are_all_results, is_any_result
from scrobble_bridge.threshold import (
    DEFAULT_SCROBBLE_TIME,
    MAX_SCROBBLE_TIME,
    NOT_SCROBBLABLE,
    get_seconds_to_scrobble,
)


OK = ServiceCallResult.OK
IGNORE = ServiceCallResult.IGNORE
FAILURE = ServiceCallResult.ERROR_OTHER


def test_empty_results_are_not_all_ignored():
    assert not are_all_results([], IGNORE)
    assert not is_any_result([], OK)


def test_single_ok_is_any_ok():
    assert is_any_result([OK], OK)


def test_all_ignored():
    assert are_all_results([IGNORE, IGNORE], IGNORE)
    assert not is_any_result([IGNORE, IGNORE], OK)


def test_mixed_ok_and_failure_is_any_ok():
    assert is_any_result([OK, FAILURE], OK)
    assert not are_all_results([OK, FAILURE], OK)


@pytest.mark.parametrize(
    ("duration", "percent", "expected"),
    [
        (300, 50, 150),
        (300, 100, 240),
        (600, 50, MAX_SCROBBLE_TIME),
        (100, 75, 75),
        (100, 10, 50),
        (29, 50, NOT_SCROBBLABLE),
        (None, 50, DEFAULT_SCROBBLE_TIME),
        (0, 50, DEFAULT_SCROBBLE_TIME),
    ],
)
def test_seconds_to_scrobble(duration, percent, expected):
    assert get_seconds_to_scrobble(duration, percent) == expected


def test_fixed_seconds_threshold_is_capped_by_duration():
    assert get_seconds_to_scrobble(300, fixed_seconds=60) == 60
    assert get_seconds_to_scrobble(45, fixed_seconds=60) == 45
    assert get_seconds_to_scrobble(20, fixed_seconds=60) == NOT_SCROBBLABLE
