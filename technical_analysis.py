"""
Technical scoring over a batch of market records.

Everything here is a pure function of its inputs. The indicators are
heuristics computed from 24h/7d snapshots, not from price history: the
"RSI" and "MACD" values only borrow the names of the real indicators.
"""

from datetime import datetime, timezone
from typing import Optional, Sequence

from models import (
    MarketAnalysis,
    MarketMetrics,
    MarketRecord,
    MarketTrend,
    MarketTrends,
    OnChainMetrics,
    SentimentBlock,
    SentimentSnapshot,
    SignalSentiment,
    TechnicalIndicators,
    TechnicalSignal,
)


# ── Thresholds ────────────────────────────────────────────────────────────────

STRONG_MOVE_PCT = 5.0
MOVE_PCT = 2.0

VOLUME_SPIKE_PCT = 20.0
BROAD_MOVE_SHARE = 0.6
WEEKLY_MOVE_PCT = 10.0

SOCIAL_GROWTH_PCT = 50.0
DEV_ACTIVITY_EVENTS = 10

FEAR_GREED_BULLISH = 65
FEAR_GREED_BEARISH = 35


# ── Per-token signals ─────────────────────────────────────────────────────────


def classify_sentiment(record: MarketRecord) -> SignalSentiment:
    change = record.percent_change_24h
    volume_rising = record.volume_24h > (record.volume_24h_previous or 0)

    if change > STRONG_MOVE_PCT and volume_rising:
        return SignalSentiment.STRONGLY_BULLISH
    if change > MOVE_PCT and volume_rising:
        return SignalSentiment.BULLISH
    if change < -STRONG_MOVE_PCT and volume_rising:
        return SignalSentiment.STRONGLY_BEARISH
    if change < -MOVE_PCT and volume_rising:
        return SignalSentiment.BEARISH
    return SignalSentiment.NEUTRAL


def synthetic_rsi(percent_change_24h: float) -> int:
    """RSI-shaped oscillator from a single 24h change. Always within [0, 100]."""
    gains = max(0.0, percent_change_24h)
    losses = abs(min(0.0, percent_change_24h))
    return round(100 - 100 / (1 + gains / max(losses, 1)))


def crossover_label(record: MarketRecord) -> str:
    """MACD-style label: is the 24h move running ahead of the weekly one?"""
    return "bullish" if record.percent_change_24h > record.percent_change_7d else "bearish"


def moving_average_trend(record: MarketRecord) -> str:
    price = record.price
    # Providers without price history leave the averages empty, which pins
    # them to the current price and the result to "sideways".
    ma50 = record.ma50 or price
    ma200 = record.ma200 or price

    if price > ma50 > ma200:
        return "strong uptrend"
    if price > ma50:
        return "uptrend"
    if price < ma50 < ma200:
        return "strong downtrend"
    if price < ma50:
        return "downtrend"
    return "sideways"


def technical_signal(record: MarketRecord) -> TechnicalSignal:
    return TechnicalSignal(
        sentiment=classify_sentiment(record),
        indicators=TechnicalIndicators(
            macd=crossover_label(record),
            rsi=synthetic_rsi(record.percent_change_24h),
            moving_averages=moving_average_trend(record),
        ),
    )


def technical_signals(records: Sequence[MarketRecord]) -> dict[str, TechnicalSignal]:
    return {r.symbol: technical_signal(r) for r in records}


# ── Batch metrics ─────────────────────────────────────────────────────────────


def dominance_index(records: Sequence[MarketRecord]) -> dict[str, float]:
    """Market-cap share per symbol, in percent. Records without a cap are skipped."""
    total = sum(r.market_cap or 0 for r in records)
    if total <= 0:
        return {}
    return {
        r.symbol: round(r.market_cap / total * 100, 2)
        for r in records
        if r.market_cap
    }


def _volume_change(record: MarketRecord) -> float:
    if record.volume_change_24h is not None:
        return record.volume_change_24h
    if record.volume_24h_previous:
        return (record.volume_24h - record.volume_24h_previous) / record.volume_24h_previous * 100
    return 0.0


def short_term_trends(records: Sequence[MarketRecord]) -> list[str]:
    if not records:
        return []

    trends: list[str] = []
    avg_volume_change = sum(_volume_change(r) for r in records) / len(records)
    if avg_volume_change > VOLUME_SPIKE_PCT:
        trends.append("High volume spike across markets")
    if avg_volume_change < -VOLUME_SPIKE_PCT:
        trends.append("Volume declining across markets")

    gainers = sum(1 for r in records if r.percent_change_24h > STRONG_MOVE_PCT)
    losers = sum(1 for r in records if r.percent_change_24h < -STRONG_MOVE_PCT)
    if gainers > len(records) * BROAD_MOVE_SHARE:
        trends.append("Broad market rally")
    if losers > len(records) * BROAD_MOVE_SHARE:
        trends.append("Market-wide correction")
    return trends


def medium_term_trends(records: Sequence[MarketRecord]) -> list[str]:
    if not records:
        return []

    trends: list[str] = []
    avg_change_7d = sum(r.percent_change_7d for r in records) / len(records)
    if avg_change_7d > WEEKLY_MOVE_PCT:
        trends.append("Strong bullish week")
    if avg_change_7d < -WEEKLY_MOVE_PCT:
        trends.append("Bearish weekly trend")
    return trends


def emerging_trends(records: Sequence[MarketRecord]) -> list[str]:
    trends: list[str] = []

    social = [
        r.symbol for r in records
        if (r.social_mentions_change_24h or 0) > SOCIAL_GROWTH_PCT
    ]
    if social:
        trends.append(f"Rising social interest in: {', '.join(social)}")

    developing = [
        r.symbol for r in records
        if (r.github_activity_24h or 0) > DEV_ACTIVITY_EVENTS
    ]
    if developing:
        trends.append(f"Active development in: {', '.join(developing)}")
    return trends


def fear_greed_trend(fear_greed_index: int) -> MarketTrend:
    if fear_greed_index > FEAR_GREED_BULLISH:
        return MarketTrend.BULLISH
    if fear_greed_index < FEAR_GREED_BEARISH:
        return MarketTrend.BEARISH
    return MarketTrend.NEUTRAL


def market_overview(
    records: Sequence[MarketRecord], sentiment: SentimentSnapshot
) -> str:
    label = fear_greed_trend(sentiment.fear_greed_index).value
    volume_trend = sentiment.volume_trend or "stable"

    if not records:
        return (
            f"Market is showing {label} signals. No token data is available right now. "
            f"Volume trends indicate {volume_trend} activity."
        )

    leader = max(records, key=lambda r: r.percent_change_24h)
    return (
        f"Market is showing {label} signals with {leader.symbol} leading gains "
        f"at {leader.percent_change_24h:.2f}% in 24h. "
        f"Volume trends indicate {volume_trend} activity."
    )


# ── Full analysis ─────────────────────────────────────────────────────────────


def build_analysis(
    records: Sequence[MarketRecord],
    sentiment: SentimentSnapshot,
    on_chain: OnChainMetrics,
    generated_at: Optional[datetime] = None,
) -> MarketAnalysis:
    """Score a fetched batch into a complete, immutable MarketAnalysis."""
    return MarketAnalysis(
        overview=market_overview(records, sentiment),
        sentiment=SentimentBlock(
            overall=sentiment.market_trend,
            fear_greed_index=sentiment.fear_greed_index,
            social_sentiment=sentiment.fear_greed_label,
        ),
        trends=MarketTrends(
            short_term=tuple(short_term_trends(records)),
            medium_term=tuple(medium_term_trends(records)),
            emerging=tuple(emerging_trends(records)),
        ),
        metrics=MarketMetrics(
            total_value_locked=on_chain.total_value_locked,
            daily_volume=on_chain.daily_volume,
            dominance_index=dominance_index(records),
        ),
        technical_signals=technical_signals(records),
        generated_at=generated_at or datetime.now(timezone.utc),
    )
