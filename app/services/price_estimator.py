from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from decimal import Decimal

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

QuoteFetcher = Callable[[int, str], Awaitable[Decimal]]


def _is_positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class PendingQuote:
    """Handle for one scheduled price computation.

    Only the most recent handle is current. Invalidating a handle does not
    cancel a request already on the wire; its result is dropped on arrival.
    """

    def __init__(self, total_days: object, currency: str | None):
        self.total_days = total_days
        self.currency = currency
        self.task: asyncio.Task | None = None
        self._superseded = False

    def invalidate(self) -> None:
        self._superseded = True

    @property
    def is_current(self) -> bool:
        return not self._superseded

    @property
    def done(self) -> bool:
        return self.task is None or self.task.done()


class PriceEstimator:
    """Debounced, cached caller of the remote price quote.

    Price unavailability is a soft failure: errors are logged and the price
    drops to zero with ``failed`` set, nothing is raised to the caller.
    """

    def __init__(self, fetch_quote: QuoteFetcher, debounce_window: float = 0.5):
        self._fetch_quote = fetch_quote
        self._debounce_window = debounce_window
        self._cache: dict[tuple[int, str], Decimal] = {}
        self._pending: PendingQuote | None = None

        self.total_price: Decimal = ZERO
        self.loading = False
        self.failed = False

    def request(self, total_days: object, currency: str | None) -> PendingQuote:
        if self._pending is not None:
            self._pending.invalidate()

        handle = PendingQuote(total_days, currency)
        self._pending = handle

        if not _is_positive_int(total_days) or not currency:
            self._apply(ZERO, failed=False)
            return handle

        self.loading = True
        handle.task = asyncio.get_running_loop().create_task(self._run(handle))
        return handle

    def cancel(self) -> None:
        pending, self._pending = self._pending, None
        if pending is not None:
            pending.invalidate()
            if pending.task is not None and not pending.task.done():
                pending.task.cancel()
        self.loading = False

    async def settle(self) -> Decimal:
        """Wait until the current handle has resolved and return the price."""
        while self._pending is not None and not self._pending.done:
            task = self._pending.task
            try:
                await task
            except asyncio.CancelledError:
                if task is not None and not task.cancelled():
                    raise
        return self.total_price

    async def _run(self, handle: PendingQuote) -> None:
        await asyncio.sleep(self._debounce_window)
        if not handle.is_current:
            return

        key = (handle.total_days, handle.currency)
        price = self._cache.get(key)
        failed = False
        if price is None:
            try:
                price = await self._fetch_quote(handle.total_days, handle.currency)
                if price < 0:
                    raise ValueError(f"negative quote {price}")
                self._cache[key] = price
            except Exception:
                logger.exception(
                    f"Price quote failed for {handle.total_days} days "
                    f"in {handle.currency}; falling back to zero"
                )
                price, failed = ZERO, True

        if not handle.is_current:
            logger.debug(
                f"Dropping superseded quote for {handle.total_days} days "
                f"in {handle.currency}"
            )
            return
        self._apply(price, failed)

    def _apply(self, price: Decimal, failed: bool) -> None:
        self.total_price = price
        self.failed = failed
        self.loading = False
