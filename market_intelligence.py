import asyncio
import contextlib
import logging
import time
from typing import Callable, Optional, Sequence

from errors import AnalysisResult, MarketDataError
from market_providers import DEFAULT_SYMBOLS, MarketDataProvider
from models import (
    ComprehensiveAnalysis,
    MarketAnalysis,
    SentimentSnapshot,
    TechnicalSignal,
)
from technical_analysis import build_analysis

logger = logging.getLogger(__name__)

FRESHNESS_WINDOW = 5 * 60  # seconds


def comprehensive_view(
    analysis: MarketAnalysis, symbol: Optional[str] = None
) -> ComprehensiveAnalysis:
    """The full analysis, plus the technical signal for `symbol` if it is tracked."""
    token_specific = analysis.technical_signals.get(symbol.upper()) if symbol else None
    return ComprehensiveAnalysis(analysis=analysis, token_specific=token_specific)


class MarketIntelligence:
    """
    Process-wide market analysis with a single cached snapshot.

    The snapshot and the time it was computed are stored together and
    swapped in one assignment, so readers see either the previous analysis
    or the new one. Stale reads trigger one recomputation that every
    concurrent caller awaits; if it fails, the error reaches all of them and
    the previous snapshot stays in place for the next attempt.
    """

    def __init__(
        self,
        provider: MarketDataProvider,
        symbols: Optional[Sequence[str]] = None,
        freshness: float = FRESHNESS_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.symbols = list(symbols or DEFAULT_SYMBOLS)
        self.freshness = freshness
        self._clock = clock
        self._snapshot: Optional[tuple[MarketAnalysis, float]] = None
        self._inflight: Optional[asyncio.Future] = None
        self._refresh_task: Optional[asyncio.Task] = None

    # ── Cache ─────────────────────────────────────────────────────────────

    @property
    def last_updated(self) -> Optional[float]:
        return self._snapshot[1] if self._snapshot else None

    def is_stale(self) -> bool:
        if self._snapshot is None:
            return True
        return self._clock() - self._snapshot[1] > self.freshness

    async def get_analysis(self) -> MarketAnalysis:
        snapshot = self._snapshot
        if snapshot is not None and not self.is_stale():
            return snapshot[0]
        return await self.refresh()

    async def refresh(self) -> MarketAnalysis:
        """Recompute now, joining a recomputation already in flight."""
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._recompute())
        # A cancelled caller must not cancel the fetch the others are awaiting
        return await asyncio.shield(self._inflight)

    async def _recompute(self) -> MarketAnalysis:
        try:
            started = self._clock()
            records, sentiment, on_chain = await asyncio.gather(
                self.provider.get_market_data(self.symbols),
                self.provider.get_market_sentiment(),
                self.provider.get_on_chain_metrics(),
            )
            analysis = build_analysis(records, sentiment, on_chain)
            self._snapshot = (analysis, self._clock())
            logger.info(
                "Market analysis refreshed: %d tokens in %.2fs",
                len(records), self._clock() - started,
            )
            return analysis
        except MarketDataError as e:
            logger.warning("Market analysis refresh failed (%s): %s", e.kind.value, e)
            raise
        finally:
            self._inflight = None

    async def try_get_analysis(self) -> AnalysisResult:
        try:
            return AnalysisResult(analysis=await self.get_analysis())
        except MarketDataError as e:
            return AnalysisResult(error=e)

    # ── Derived queries ───────────────────────────────────────────────────

    async def analyze_price_trend(self, symbol: str) -> Optional[TechnicalSignal]:
        analysis = await self.get_analysis()
        return analysis.technical_signals.get(symbol.upper())

    async def get_market_sentiment(self) -> SentimentSnapshot:
        analysis = await self.get_analysis()
        return SentimentSnapshot(
            market_trend=analysis.sentiment.overall,
            fear_greed_index=analysis.sentiment.fear_greed_index,
            fear_greed_label=analysis.sentiment.social_sentiment,
        )

    async def get_comprehensive_analysis(
        self, symbol: Optional[str] = None
    ) -> ComprehensiveAnalysis:
        return comprehensive_view(await self.get_analysis(), symbol)

    # ── Scheduled refresh ─────────────────────────────────────────────────

    def start_background_refresh(self, interval: float) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            return
        self._refresh_task = asyncio.create_task(self._refresh_loop(interval))
        logger.info("Background market refresh every %ss", interval)

    async def stop_background_refresh(self) -> None:
        task, self._refresh_task = self._refresh_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _refresh_loop(self, interval: float) -> None:
        while True:
            try:
                await self.refresh()
            except MarketDataError:
                # already logged by _recompute; try again next tick
                pass
            except Exception:
                logger.exception("Background market refresh failed")
            await asyncio.sleep(interval)
