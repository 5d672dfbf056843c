"""Upload progress computation."""
from typing import Awaitable, Callable, Optional


def compute_percent(loaded: Optional[int], total: Optional[int]) -> int:
    """
    Whole percent of ``loaded`` over ``total``, floored and clamped to [0, 100].

    Missing or non-positive totals give 0.
    """
    if not total or total <= 0:
        return 0
    percent = int(loaded or 0) * 100 // int(total)
    return max(0, min(100, percent))


class ProgressReporter:
    """
    Converts transport byte counters for one upload into percent samples.

    Only samples strictly below 100 are forwarded; completion is reported
    by the task's success transition, never by a progress sample.
    """

    def __init__(self, forward: Callable[[int], Awaitable[None]]):
        self._forward = forward
        self.last_percent: Optional[int] = None

    async def __call__(self, loaded: int, total: Optional[int]) -> None:
        percent = compute_percent(loaded, total)
        if percent >= 100:
            return
        self.last_percent = percent
        await self._forward(percent)
