import asyncio
from typing import Optional, Sequence

import pytest

from market_intelligence import MarketIntelligence
from market_providers import MarketDataProvider
from models import (
    LLMReply,
    MarketRecord,
    MarketTrend,
    OnChainMetrics,
    SentimentSnapshot,
)


class FakeClock:
    """Manually advanced stand-in for time.monotonic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeMarketProvider(MarketDataProvider):
    """In-memory provider that counts fetches and can be told to fail."""

    def __init__(
        self,
        records: Sequence[MarketRecord],
        sentiment: Optional[SentimentSnapshot] = None,
        on_chain: Optional[OnChainMetrics] = None,
    ):
        self.records = list(records)
        self.sentiment = sentiment or SentimentSnapshot(
            market_trend=MarketTrend.BULLISH,
            fear_greed_index=70,
            fear_greed_label="Greed",
        )
        self.on_chain = on_chain or OnChainMetrics(
            total_value_locked="$845M", daily_volume="$324M"
        )
        self.calls = 0
        self.requested_symbols: list[list[str]] = []
        self.error: Optional[Exception] = None
        self.delay = 0.0

    async def get_market_data(self, symbols):
        self.calls += 1
        self.requested_symbols.append(list(symbols))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.records)

    async def get_market_sentiment(self):
        return self.sentiment

    async def get_on_chain_metrics(self):
        return self.on_chain


class FakeLLM:
    """Records every completion request and returns a canned reply."""

    def __init__(self, reply: Optional[LLMReply] = None):
        self.reply = reply or LLMReply(text="Here is what I found.")
        self.error: Optional[Exception] = None
        self.requests: list[dict] = []

    async def complete(self, system_prompt, query, tools=None):
        self.requests.append(
            {"system_prompt": system_prompt, "query": query, "tools": tools}
        )
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture()
def scenario_records() -> list[MarketRecord]:
    return [
        MarketRecord(
            symbol="SOL", price=150.0, percent_change_24h=6.0, percent_change_7d=3.0,
            volume_24h=3_000_000_000, volume_24h_previous=2_000_000_000,
            market_cap=70_000_000_000,
        ),
        MarketRecord(
            symbol="BTC", price=95_000.0, percent_change_24h=1.0, percent_change_7d=2.5,
            volume_24h=30_000_000_000, volume_24h_previous=35_000_000_000,
            market_cap=1_880_000_000_000,
        ),
        MarketRecord(
            symbol="ETH", price=3_200.0, percent_change_24h=-7.0, percent_change_7d=-2.0,
            volume_24h=18_000_000_000, volume_24h_previous=12_000_000_000,
            market_cap=385_000_000_000,
        ),
    ]


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def provider(scenario_records) -> FakeMarketProvider:
    return FakeMarketProvider(scenario_records)


@pytest.fixture()
def intelligence(provider, clock) -> MarketIntelligence:
    return MarketIntelligence(provider, symbols=["SOL", "BTC", "ETH"], clock=clock)


@pytest.fixture()
def llm() -> FakeLLM:
    return FakeLLM()
