"""
Batched parallel fetching.

Runs one job per ticker on a fixed-width thread pool, a batch at a time,
pausing between batches so bursts stay under the provider's rate limit.
Tickers refused by the rate limiter are retried in the next batch after
waiting out the limiter's retry_after.
A failing ticker never stops the others: its error is recorded on its
BatchOutcome. Outcomes come back in input order.
"""

import logging
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from domain import IndicatorFailure, IndicatorResult, is_failure
from ports import AdapterError, RateLimitError

from .indicators import IndicatorService, render_error

logger = logging.getLogger(__name__)


@dataclass
class BatchOutcome:
    """Result of one ticker's job."""
    ticker: str
    value: Any = None
    error: str | None = None
    # Seconds until the limiter frees a slot, when refused with a known wait
    retry_after: float | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and not is_failure(self.value)

    @property
    def message(self) -> str | None:
        """Diagnostic for a failed job, None on success."""
        if self.error is not None:
            return self.error
        if is_failure(self.value):
            return self.value.render()
        return None


class BatchRunner:
    """
    Fixed-width batches with a delay between them.

    Args:
        concurrency: Jobs in flight per batch
        delay_seconds: Pause after each batch except the last
        max_retries: Times a rate-limited ticker is requeued
        sleep: Injectable for tests
    """

    def __init__(
        self,
        concurrency: int = 5,
        delay_seconds: float = 1.0,
        max_retries: int = 3,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        if delay_seconds < 0:
            raise ValueError(f"delay_seconds must be >= 0, got {delay_seconds}")
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self.concurrency = concurrency
        self.delay_seconds = delay_seconds
        self.max_retries = max_retries
        self._sleep = sleep

    def _run_one(self, job: Callable[[str], Any], ticker: str) -> BatchOutcome:
        try:
            return BatchOutcome(ticker=ticker, value=job(ticker))
        except RateLimitError as e:
            logger.info(f"{ticker}: {e}", extra={"ticker": ticker, "error": e.to_dict()})
            wait = e.retry_after.total_seconds() if e.retry_after is not None else None
            return BatchOutcome(ticker=ticker, error=render_error(e), retry_after=wait)
        except AdapterError as e:
            logger.warning(f"{ticker}: {e}", extra={"ticker": ticker, "error": e.to_dict()})
            return BatchOutcome(ticker=ticker, error=render_error(e))
        except Exception as e:
            logger.exception(f"{ticker}: unexpected error")
            return BatchOutcome(ticker=ticker, error=render_error(e))

    def run(self, tickers: Sequence[str], job: Callable[[str], Any]) -> list[BatchOutcome]:
        """
        Run job(ticker) for every ticker; outcomes in input order.

        A ticker refused by the rate limiter goes back to the head of the
        queue, and the pause before the next batch stretches to the longest
        retry_after in the batch. Each ticker is requeued at most
        max_retries times.
        """
        outcomes: dict[int, BatchOutcome] = {}
        retries = [0] * len(tickers)
        pending = list(enumerate(tickers))
        batch_number = 0

        with ThreadPoolExecutor(max_workers=self.concurrency) as executor:
            while pending:
                batch, pending = pending[:self.concurrency], pending[self.concurrency:]
                batch_number += 1
                futures = [(index, executor.submit(self._run_one, job, ticker)) for index, ticker in batch]

                requeued = []
                wait = self.delay_seconds
                for index, future in futures:
                    outcome = future.result()
                    if outcome.retry_after is not None and retries[index] < self.max_retries:
                        retries[index] += 1
                        requeued.append((index, outcome.ticker))
                        wait = max(wait, outcome.retry_after)
                    else:
                        outcomes[index] = outcome
                pending = requeued + pending

                logger.debug(f"Batch {batch_number} done ({len(batch)} tickers, {len(requeued)} rate-limited)")
                if pending and wait > 0:
                    if requeued:
                        logger.info(f"Rate limited; waiting {wait:.1f}s before retrying {len(requeued)} ticker(s)")
                    self._sleep(wait)

        return [outcomes[index] for index in range(len(tickers))]


def batch_indicators(
    service: IndicatorService,
    tickers: Sequence[str],
    indicator: str,
    period: int | None = None,
    from_date: str | None = None,
    to_date: str | None = None,
    runner: BatchRunner | None = None,
) -> list[BatchOutcome]:
    """
    Compute one indicator for many tickers.

    Each outcome's value is an IndicatorResult or IndicatorFailure; fetch
    errors are rendered into ``error``.
    """
    settings = service.settings
    runner = runner or BatchRunner(settings.batch_concurrency, settings.batch_delay_seconds)

    def job(ticker: str) -> IndicatorResult | IndicatorFailure:
        return service.technical_indicator(
            ticker, indicator, period=period, from_date=from_date, to_date=to_date,
        )

    return runner.run(list(tickers), job)
