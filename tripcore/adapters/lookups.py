"""Async lookup execution with a hard timeout.

External resolvers (restaurants, luggage storage) are awaited one at a time
from inside a day's orchestration. A lookup that raises or exceeds its
timeout is reported as a ResolverError; callers degrade to a placeholder.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from tripcore.utils.logging import StructuredLookupLogger
from tripcore.utils.metrics import PrometheusLookupMetrics

T = TypeVar("T")


class ResolverError(Exception):
    """Base error for external lookups."""

    pass


class ResolverTimeoutError(ResolverError):
    """Lookup exceeded its hard timeout."""

    pass


class ResolverExecutionError(ResolverError):
    """Lookup raised an exception."""

    pass


@dataclass(frozen=True)
class LookupContext:
    """Identifies one lookup for logs and metrics."""

    resolver: str
    day_number: int | None = None


class LookupExecutor:
    """Runs resolver coroutines sequentially under a hard timeout."""

    def __init__(
        self,
        hard_timeout_ms: int,
        metrics: PrometheusLookupMetrics | None = None,
        logger: StructuredLookupLogger | None = None,
    ) -> None:
        """Initialize executor.

        Args:
            hard_timeout_ms: Per-lookup timeout in milliseconds
            metrics: Metrics recorder (defaults to Prometheus)
            logger: Structured logger
        """
        self._hard_timeout_ms = hard_timeout_ms
        self._metrics = metrics or PrometheusLookupMetrics()
        self._logger = logger or StructuredLookupLogger()

    async def execute(self, ctx: LookupContext, fn: Callable[[], Awaitable[T]]) -> T:
        """Await one lookup.

        Returns:
            The resolver's result (which may itself be None for "nothing found")

        Raises:
            ResolverTimeoutError: Lookup exceeded the hard timeout
            ResolverExecutionError: Lookup raised
        """
        start = time.monotonic()
        try:
            result = await asyncio.wait_for(fn(), timeout=self._hard_timeout_ms / 1000)
        except asyncio.TimeoutError as e:
            elapsed_ms = (time.monotonic() - start) * 1000
            self._metrics.record_latency(ctx.resolver, "timeout", elapsed_ms)
            self._metrics.inc_fallback(ctx.resolver, "timeout")
            self._logger.log_attempt(ctx.resolver, "timeout", elapsed_ms, ctx.day_number, "timeout")
            raise ResolverTimeoutError(
                f"Lookup {ctx.resolver} timed out after {self._hard_timeout_ms} ms"
            ) from e
        except Exception as e:
            elapsed_ms = (time.monotonic() - start) * 1000
            self._metrics.record_latency(ctx.resolver, "error", elapsed_ms)
            self._metrics.inc_fallback(ctx.resolver, "execution_error")
            self._logger.log_attempt(ctx.resolver, "error", elapsed_ms, ctx.day_number, type(e).__name__)
            raise ResolverExecutionError(f"Lookup {ctx.resolver} failed") from e

        elapsed_ms = (time.monotonic() - start) * 1000
        self._metrics.record_latency(ctx.resolver, "success", elapsed_ms)
        self._logger.log_attempt(ctx.resolver, "success", elapsed_ms, ctx.day_number)
        return result
