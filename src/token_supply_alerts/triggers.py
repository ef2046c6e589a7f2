from __future__ import annotations

DEFAULT_INCREASE_THRESHOLD_PERCENT = 10


def is_large_increase(previous: int, current: int, percent: int = DEFAULT_INCREASE_THRESHOLD_PERCENT) -> bool:
    """Return True when ``current`` exceeds ``previous`` by strictly more than ``percent``.

    Compares ``current * 100`` against ``previous * (100 + percent)`` so the
    check stays exact for arbitrarily large integers.
    """
    if previous <= 0:
        return False
    return current * 100 > previous * (100 + percent)


def evaluate_triggers(
    previous: int | None,
    current: int,
    *,
    notify_on_increase: bool,
    notify_on_decrease: bool,
    target: int | None = None,
    increase_threshold_percent: int = DEFAULT_INCREASE_THRESHOLD_PERCENT,
) -> list[str]:
    """Return the reasons a move from ``previous`` to ``current`` should raise an alert.

    An unset ``previous`` only establishes a baseline and never triggers.
    Target crossing is an edge: it fires when the previous value was below
    the target and the current value is at or above it.
    """
    reasons: list[str] = []
    if previous is None:
        return reasons

    if current > previous:
        if notify_on_increase and is_large_increase(previous, current, increase_threshold_percent):
            reasons.append(
                f"total supply increase > {increase_threshold_percent}%: {previous} -> {current}"
            )
    elif current < previous:
        if notify_on_decrease:
            reasons.append(f"total supply decreased from {previous} to {current}")

    if target is not None and previous < target <= current:
        reasons.append(f"total supply reached target {target}")

    return reasons
