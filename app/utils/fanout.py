# utils/fanout.py
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional

from core.config import settings


@dataclass
class Outcome:
    item: Any
    value: Any = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def map_bounded(
    fn: Callable[[Any], Any],
    items: Iterable[Any],
    max_workers: Optional[int] = None
) -> List[Outcome]:
    """
    Apply `fn` to every item with at most `max_workers` calls in flight.

    Every item runs to completion; failures are captured on the Outcome rather
    than cancelling the rest. Outcomes are returned in input order.
    """
    items = list(items)
    if not items:
        return []

    workers = max(1, min(max_workers or settings.MAX_CONCURRENCY, len(items)))
    outcomes: List[Optional[Outcome]] = [None] * len(items)

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(fn, item): index for index, item in enumerate(items)}
        for future in as_completed(futures):
            index = futures[future]
            try:
                outcomes[index] = Outcome(item=items[index], value=future.result())
            except Exception as error:  # pylint: disable=broad-except
                outcomes[index] = Outcome(item=items[index], error=error)

    return outcomes
