"""Health-ordered position scanner."""
from __future__ import annotations

import logging
from collections.abc import Iterator

from ..errors import SortOrderViolation
from ..interfaces.lending_protocol import LendingProtocol
from ..models import LoanPosition, TradableUnit
from ..timeouts import with_timeout

logger = logging.getLogger(__name__)


def first_order_violation(positions: list[LoanPosition]) -> int | None:
    """Index of the first position ranked healthier-than-next, else None."""
    for i in range(1, len(positions)):
        if positions[i].health.rank < positions[i - 1].health.rank:
            return i
    return None


class PositionScanner:
    """Fetch a unit's open loans and walk the actionable prefix.

    The data source returns positions sorted worst-to-best health. The walk
    stops at the first position that is not liquidatable; if the source ever
    breaks that ordering, liquidatable positions after the gap are missed.
    ``validate_order`` checks the full list first and reports violations
    without changing the walk.
    """

    def __init__(
        self,
        protocol: LendingProtocol,
        call_timeout: float,
        validate_order: bool = False,
        strict_order: bool = False,
    ) -> None:
        self._protocol = protocol
        self._call_timeout = call_timeout
        self._validate_order = validate_order
        self._strict_order = strict_order

    async def scan(self, unit: TradableUnit) -> list[LoanPosition]:
        """Open positions for ``unit``; empty when the fetch fails or times out."""
        try:
            return await with_timeout(
                self._protocol.get_positions(unit.mint),
                "getAllLoanPositions",
                self._call_timeout,
            )
        except Exception as e:
            logger.debug("%s — no lending data, skipping: %s", unit.symbol, e)
            return []

    def actionable(
        self, unit: TradableUnit, positions: list[LoanPosition]
    ) -> Iterator[LoanPosition]:
        """Yield positions in order until the first non-liquidatable one."""
        if self._validate_order:
            self._check_order(unit, positions)

        for position in positions:
            if not position.is_liquidatable:
                break
            yield position

    def _check_order(self, unit: TradableUnit, positions: list[LoanPosition]) -> None:
        index = first_order_violation(positions)
        if index is None:
            return
        logger.error(
            "%s — positions not sorted by health at index %d (%s after %s)",
            unit.symbol,
            index,
            positions[index].health.value,
            positions[index - 1].health.value,
        )
        if self._strict_order:
            raise SortOrderViolation(unit.mint, index)
