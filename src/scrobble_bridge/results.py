from __future__ import annotations

from collections.abc import Sequence

from scrobble_bridge.models import ServiceCallResult


def is_any_result(results: Sequence[ServiceCallResult], result: ServiceCallResult) -> bool:
    return any(item == result for item in results)


def are_all_results(results: Sequence[ServiceCallResult], result: ServiceCallResult) -> bool:
    """Empty input counts as "not all", so no services means no verdict."""
    if not results:
        return False
    return all(item == result for item in results)
