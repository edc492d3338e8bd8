from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Awaitable, Callable, Iterable

from xoso.models import BatchProcessResult, ProcessResult, Region, Ticket, TicketStatus
from xoso.rates import RateSettings
from xoso.settlement import DrawResultMap, SettlementOptions, settle_message

logger = logging.getLogger(__name__)

ResultFetcher = Callable[[date, Region], Awaitable[DrawResultMap]]
ResultKey = tuple[date, Region]

ALREADY_PROCESSED_MESSAGE = "Ticket đã được xử lý"
NO_RESULTS_MESSAGE = "Chưa có kết quả xổ số"


class TicketProcessor:
    """Settle pending tickets against draw results from an async provider.

    Concurrent requests for the same (draw_date, region) share one fetch, and
    non-empty results are kept for the processor's lifetime.
    """

    def __init__(
        self,
        fetch_results: ResultFetcher,
        rate_settings: RateSettings | None = None,
        options: SettlementOptions | None = None,
    ) -> None:
        self._fetch_results = fetch_results
        self._rate_settings = rate_settings or RateSettings.default()
        self._options = options or SettlementOptions()
        self._lock = asyncio.Lock()
        self._inflight: dict[ResultKey, asyncio.Task[DrawResultMap]] = {}
        self._results: dict[ResultKey, DrawResultMap] = {}

    async def results_for(self, draw_date: date, region: Region | str) -> DrawResultMap:
        key = (draw_date, Region.parse(region))
        created_task = False
        task: asyncio.Task[DrawResultMap]
        async with self._lock:
            cached = self._results.get(key)
            if cached is not None:
                return cached
            existing = self._inflight.get(key)
            if existing is None:
                task = asyncio.create_task(self._fetch_results(*key))
                self._inflight[key] = task
                created_task = True
                logger.info("draw results fetch started: date=%s region=%s", key[0].isoformat(), key[1].value)
            else:
                task = existing
                logger.info("draw results fetch joined: date=%s region=%s", key[0].isoformat(), key[1].value)

        try:
            results = await task
        finally:
            if created_task:
                async with self._lock:
                    if self._inflight.get(key) is task:
                        self._inflight.pop(key, None)

        if results and created_task:
            async with self._lock:
                self._results[key] = results
        return results or {}

    async def process_ticket(self, ticket: Ticket) -> ProcessResult:
        if ticket.status is TicketStatus.COMPLETED:
            return ProcessResult(ticket_id=ticket.ticket_id, success=True, error=ALREADY_PROCESSED_MESSAGE)

        try:
            results = await self.results_for(ticket.draw_date, ticket.region)
            if not results:
                logger.info(
                    "ticket skipped, no draw results: ticket=%s date=%s region=%s",
                    ticket.ticket_id,
                    ticket.draw_date.isoformat(),
                    ticket.region.value,
                )
                return ProcessResult(ticket_id=ticket.ticket_id, success=False, error=NO_RESULTS_MESSAGE)

            settings = ticket.rate_settings or self._rate_settings
            settled = settle_message(ticket.bets, results, settings, ticket.region, self._options)
            total_win_amount = sum(r.win_amount for r in settled)
            ticket.status = TicketStatus.COMPLETED
        except Exception as exc:
            logger.exception("ticket processing failed: ticket=%s", ticket.ticket_id)
            return ProcessResult(ticket_id=ticket.ticket_id, success=False, error=str(exc))

        logger.info(
            "ticket processed: ticket=%s bets=%d win_amount=%d",
            ticket.ticket_id,
            len(settled),
            total_win_amount,
        )
        return ProcessResult(
            ticket_id=ticket.ticket_id,
            success=True,
            bets_processed=len(settled),
            total_win_amount=total_win_amount,
        )

    async def process_pending(
        self,
        tickets: Iterable[Ticket],
        draw_date: date | None = None,
        region: Region | str | None = None,
    ) -> BatchProcessResult:
        wanted_region = Region.parse(region) if region is not None else None
        pending = [
            t
            for t in tickets
            if t.status is TicketStatus.PENDING
            and (draw_date is None or t.draw_date == draw_date)
            and (wanted_region is None or t.region is wanted_region)
        ]

        results = await asyncio.gather(*(self.process_ticket(t) for t in pending))

        batch = BatchProcessResult(processed=len(results), results=list(results))
        for result in results:
            if result.success:
                batch.success += 1
                batch.total_win_amount += result.total_win_amount
            else:
                batch.failed += 1
        logger.info(
            "pending tickets processed: processed=%d success=%d failed=%d win_amount=%d",
            batch.processed,
            batch.success,
            batch.failed,
            batch.total_win_amount,
        )
        return batch
