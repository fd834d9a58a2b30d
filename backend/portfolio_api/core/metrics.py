from collections import Counter
from threading import Lock
from typing import Dict, Counter as CounterType

_metrics: CounterType[str] = Counter()
_lock = Lock()


def _inc(key: str, amount: int = 1) -> None:
    with _lock:
        _metrics[key] += amount


def record_slug_renamed() -> None:
    _inc("slug_renames")


def record_slug_reverted() -> None:
    _inc("slug_reversions")


def record_redirect_cycle_rejected() -> None:
    _inc("redirect_cycles_rejected")


def record_redirect_duplicate() -> None:
    _inc("redirect_duplicates_ignored")


def record_redirects_flattened(count: int) -> None:
    if count > 0:
        _inc("redirects_flattened", count)


def snapshot() -> Dict[str, int]:
    with _lock:
        return dict(_metrics)


def reset() -> None:
    with _lock:
        _metrics.clear()
