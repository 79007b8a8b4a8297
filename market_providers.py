import asyncio
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from errors import MalformedPayloadError, ProviderUnavailableError
from models import MarketRecord, OnChainMetrics, SentimentSnapshot
from technical_analysis import fear_greed_trend
from utils import format_currency

logger = logging.getLogger(__name__)


# ── Endpoints ─────────────────────────────────────────────────────────────────

COINGECKO_BASE = "https://api.coingecko.com/api/v3"
COINGECKO_PRO_BASE = "https://pro-api.coingecko.com/api/v3"
FEAR_GREED_URL = "https://api.alternative.me/fng/"
DEFILLAMA_BASE = "https://api.llama.fi"

# Ticker -> CoinGecko coin ID
SYMBOL_TO_COINGECKO: dict[str, str] = {
    "SOL": "solana",
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "BONK": "bonk",
    "JUP": "jupiter-exchange-solana",
    "USDC": "usd-coin",
    "USDT": "tether",
    "RAY": "raydium",
    "JTO": "jito-governance-token",
    "PYTH": "pyth-network",
    "WIF": "dogwifcoin",
}

DEFAULT_SYMBOLS = ["SOL", "BTC", "ETH", "BONK", "JUP"]


# ── Raw payload shapes ────────────────────────────────────────────────────────
# Only the fields we read; anything else in the payload is ignored.


class _CoinGeckoMarket(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    symbol: str
    current_price: Optional[float] = None
    market_cap: Optional[float] = None
    total_volume: Optional[float] = None
    price_change_percentage_24h_in_currency: Optional[float] = None
    price_change_percentage_7d_in_currency: Optional[float] = None


class _FearGreedEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    value: int
    value_classification: str


class _FearGreedPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: list[_FearGreedEntry]


class _LlamaChain(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    tvl: float = 0.0


class _LlamaDexOverview(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total24h: Optional[float] = None


# ── Base Provider ─────────────────────────────────────────────────────────────


class MarketDataProvider(ABC):
    """Source of the raw inputs to a market analysis."""

    @abstractmethod
    async def get_market_data(self, symbols: Sequence[str]) -> list[MarketRecord]:
        ...

    @abstractmethod
    async def get_market_sentiment(self) -> SentimentSnapshot:
        ...

    @abstractmethod
    async def get_on_chain_metrics(self) -> OnChainMetrics:
        ...


async def _get_json(
    client: httpx.AsyncClient, source: str, url: str, params: Optional[dict] = None
) -> Any:
    try:
        resp = await client.get(url, params=params)
        resp.raise_for_status()
    except httpx.HTTPError as e:
        raise ProviderUnavailableError(source, str(e) or type(e).__name__) from e

    try:
        return resp.json()
    except ValueError as e:
        raise MalformedPayloadError(source, "response is not valid JSON") from e


# ── Live Provider (CoinGecko + alternative.me + DefiLlama) ────────────────────


class LiveMarketProvider(MarketDataProvider):
    def __init__(
        self,
        chain: str = "Solana",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.chain = chain
        self.timeout = timeout
        self._transport = transport

        api_key = os.getenv("COINGECKO_API_KEY", "")
        if api_key:
            self.coingecko_base = COINGECKO_PRO_BASE
            self.coingecko_headers = {"x-cg-pro-api-key": api_key}
        else:
            self.coingecko_base = COINGECKO_BASE
            self.coingecko_headers = {}

    def _client(self, headers: Optional[dict] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout, headers=headers, transport=self._transport
        )

    # ── Prices / volume (CoinGecko) ────────────────────────────────────────

    async def get_market_data(self, symbols: Sequence[str]) -> list[MarketRecord]:
        ids: dict[str, str] = {}
        for symbol in symbols:
            cg_id = SYMBOL_TO_COINGECKO.get(symbol.upper())
            if cg_id:
                ids[cg_id] = symbol.upper()
            else:
                logger.warning("No CoinGecko mapping for %s, skipping", symbol)
        if not ids:
            return []

        async with self._client(self.coingecko_headers) as client:
            payload = await _get_json(
                client, "coingecko", f"{self.coingecko_base}/coins/markets",
                params={
                    "vs_currency": "usd",
                    "ids": ",".join(ids),
                    "price_change_percentage": "24h,7d",
                },
            )

        try:
            rows = [_CoinGeckoMarket.model_validate(row) for row in payload]
        except (ValidationError, TypeError) as e:
            raise MalformedPayloadError("coingecko", str(e)) from e

        records: list[MarketRecord] = []
        for row in rows:
            symbol = ids.get(row.id)
            if symbol is None:
                continue
            records.append(MarketRecord(
                symbol=symbol,
                price=row.current_price or 0.0,
                percent_change_24h=row.price_change_percentage_24h_in_currency or 0.0,
                percent_change_7d=row.price_change_percentage_7d_in_currency or 0.0,
                volume_24h=row.total_volume or 0.0,
                market_cap=row.market_cap,
            ))

        # Keep the caller's ordering rather than CoinGecko's market-cap ranking
        order = {s: i for i, s in enumerate(ids.values())}
        records.sort(key=lambda r: order[r.symbol])
        return records

    # ── Fear & Greed (alternative.me) ──────────────────────────────────────

    async def get_market_sentiment(self) -> SentimentSnapshot:
        async with self._client() as client:
            payload = await _get_json(
                client, "alternative.me", FEAR_GREED_URL, params={"limit": 1}
            )

        try:
            parsed = _FearGreedPayload.model_validate(payload)
        except ValidationError as e:
            raise MalformedPayloadError("alternative.me", str(e)) from e
        if not parsed.data:
            raise MalformedPayloadError("alternative.me", "empty data list")

        entry = parsed.data[0]
        index = max(0, min(100, entry.value))
        return SentimentSnapshot(
            market_trend=fear_greed_trend(index),
            fear_greed_index=index,
            fear_greed_label=entry.value_classification,
        )

    # ── TVL / DEX volume (DefiLlama) ───────────────────────────────────────

    async def get_on_chain_metrics(self) -> OnChainMetrics:
        async with self._client() as client:
            chains_payload, dex_payload = await asyncio.gather(
                _get_json(client, "defillama", f"{DEFILLAMA_BASE}/v2/chains"),
                _get_json(
                    client, "defillama",
                    f"{DEFILLAMA_BASE}/overview/dexs/{self.chain}",
                    params={
                        "excludeTotalDataChart": "true",
                        "excludeTotalDataChartBreakdown": "true",
                    },
                ),
            )

        try:
            chains = [_LlamaChain.model_validate(c) for c in chains_payload]
            dex = _LlamaDexOverview.model_validate(dex_payload)
        except (ValidationError, TypeError) as e:
            raise MalformedPayloadError("defillama", str(e)) from e

        chain = next(
            (c for c in chains if c.name.lower() == self.chain.lower()), None
        )
        if chain is None:
            raise MalformedPayloadError("defillama", f"chain '{self.chain}' not listed")

        return OnChainMetrics(
            total_value_locked=format_currency(chain.tvl, decimals=0),
            daily_volume=format_currency(dex.total24h or 0.0, decimals=0),
        )


# ── Factory ───────────────────────────────────────────────────────────────────


def get_market_provider() -> MarketDataProvider:
    return LiveMarketProvider(chain=os.getenv("MARKET_CHAIN", "Solana"))
