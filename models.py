from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ── Enums ─────────────────────────────────────────────────────────────────────


class MarketTrend(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class SignalSentiment(str, Enum):
    STRONGLY_BULLISH = "strongly bullish"
    BULLISH = "bullish"
    NEUTRAL = "neutral"
    BEARISH = "bearish"
    STRONGLY_BEARISH = "strongly bearish"


class ExpertiseLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


# ── Market Data ───────────────────────────────────────────────────────────────


class MarketRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    price: float = 0.0
    percent_change_24h: float = 0.0
    percent_change_7d: float = 0.0
    volume_24h: float = 0.0
    volume_24h_previous: Optional[float] = None
    volume_change_24h: Optional[float] = None
    market_cap: Optional[float] = None
    social_mentions_change_24h: Optional[float] = None
    github_activity_24h: Optional[int] = None
    ma50: Optional[float] = None
    ma200: Optional[float] = None


class SentimentSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    market_trend: MarketTrend = MarketTrend.NEUTRAL
    fear_greed_index: int = Field(50, ge=0, le=100)
    fear_greed_label: str = "Neutral"
    volume_trend: Optional[str] = None


class OnChainMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_value_locked: str
    daily_volume: str
    daily_transactions: Optional[str] = None


# ── Market Analysis ───────────────────────────────────────────────────────────


class TechnicalIndicators(BaseModel):
    model_config = ConfigDict(frozen=True)

    macd: str
    rsi: int = Field(..., ge=0, le=100)
    moving_averages: str


class TechnicalSignal(BaseModel):
    model_config = ConfigDict(frozen=True)

    sentiment: SignalSentiment
    indicators: TechnicalIndicators


class SentimentBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall: MarketTrend
    fear_greed_index: int
    social_sentiment: str
    top_mentions: tuple[str, ...] = ()


class MarketTrends(BaseModel):
    model_config = ConfigDict(frozen=True)

    short_term: tuple[str, ...] = ()
    medium_term: tuple[str, ...] = ()
    emerging: tuple[str, ...] = ()


class MarketMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_value_locked: str
    daily_volume: str
    dominance_index: dict[str, float] = {}


class MarketAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    overview: str
    sentiment: SentimentBlock
    trends: MarketTrends
    metrics: MarketMetrics
    technical_signals: dict[str, TechnicalSignal] = {}
    generated_at: datetime


# ── Intents ───────────────────────────────────────────────────────────────────


class TransferIntent(BaseModel):
    type: Literal["TRANSFER"] = "TRANSFER"
    token: str = "SOL"
    amount: float = Field(..., gt=0)
    recipient: str = Field(..., min_length=1)
    auto_execute: bool = Field(False, alias="autoExecute")
    response: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class SwapIntent(BaseModel):
    type: Literal["SWAP"] = "SWAP"
    from_token: str = Field(..., min_length=1, alias="fromToken")
    to_token: str = Field(..., min_length=1, alias="toToken")
    amount: Optional[float] = Field(None, gt=0)
    auto_execute: bool = Field(False, alias="autoExecute")
    response: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


Intent = Annotated[Union[TransferIntent, SwapIntent], Field(discriminator="type")]


# ── LLM ───────────────────────────────────────────────────────────────────────


class ToolCall(BaseModel):
    name: str
    arguments: dict[str, Any] = {}


class LLMReply(BaseModel):
    text: str = ""
    tool_calls: list[ToolCall] = []


# ── Chat ──────────────────────────────────────────────────────────────────────


class ChatTurn(BaseModel):
    prompt: str = ""
    response: str = ""


class ChatContext(BaseModel):
    wallet_connected: bool = False
    wallet_address: Optional[str] = None
    balance: float = 0.0
    token_balances: list[dict[str, Any]] = []
    expertise_level: Optional[ExpertiseLevel] = None
    previous_interactions: list[ChatTurn] = []
    session_id: Optional[str] = None
    start_time: Optional[float] = Field(
        None,
        description="Client clock when the request was sent, epoch seconds or JS milliseconds",
    )

    @field_validator("start_time")
    @classmethod
    def _epoch_seconds(cls, v: Optional[float]) -> Optional[float]:
        # Date.now() values are in milliseconds
        if v is not None and v > 1e11:
            return v / 1000
        return v


class ResponseAnalysis(BaseModel):
    market_context: MarketAnalysis
    sentiment: SentimentBlock


class ChatResponse(BaseModel):
    message: str
    intent: Optional[Intent] = None
    suggestions: list[str] = []
    analysis: Optional[ResponseAnalysis] = None
    tool_calls: list[ToolCall] = []


# ── API Models ────────────────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str
    version: str


class ChatRequest(BaseModel):
    prompt: str = Field(..., min_length=1, description="The user's chat message")
    context: ChatContext = Field(default_factory=ChatContext)


class ComprehensiveAnalysis(BaseModel):
    analysis: MarketAnalysis
    token_specific: Optional[TechnicalSignal] = None
