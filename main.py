import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastmcp import FastMCP

load_dotenv()

from agent import ChatAgent
from assistant import WalletAssistant
from errors import FailureKind, MarketDataError
from market_intelligence import MarketIntelligence, comprehensive_view
from market_providers import get_market_provider
from models import (
    ChatContext,
    ChatRequest,
    ChatResponse,
    ComprehensiveAnalysis,
    HealthResponse,
    SentimentSnapshot,
    TechnicalSignal,
)
from utils import parse_symbols

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


# ── Lifespan ──────────────────────────────────────────────────────────────────

intelligence: MarketIntelligence | None = None
wallet_assistant: WalletAssistant | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global intelligence, wallet_assistant
    symbols = parse_symbols(os.getenv("MARKET_SYMBOLS", ""))
    intelligence = MarketIntelligence(get_market_provider(), symbols or None)

    try:
        wallet_assistant = WalletAssistant(ChatAgent(), intelligence)
    except Exception as e:
        logger.warning("AI chat disabled: %s", e)
        wallet_assistant = None

    refresh_interval = os.getenv("MARKET_REFRESH_INTERVAL")
    if refresh_interval:
        intelligence.start_background_refresh(float(refresh_interval))

    logger.info("Wallet Chat Assistant ready (tracking %s)", ", ".join(intelligence.symbols))
    yield
    await intelligence.stop_background_refresh()
    logger.info("Shutting down.")


def get_intelligence() -> MarketIntelligence:
    if intelligence is None:
        raise HTTPException(status_code=503, detail="Market intelligence is not ready")
    return intelligence


def get_assistant() -> WalletAssistant:
    if wallet_assistant is None:
        raise HTTPException(
            status_code=503,
            detail="AI chat is disabled. Check AI_PROVIDER and its API key.",
        )
    return wallet_assistant


def market_http_error(e: MarketDataError) -> HTTPException:
    status = 502 if e.kind == FailureKind.MALFORMED_PAYLOAD else 503
    return HTTPException(
        status_code=status,
        detail={"failure": e.kind.value, "source": e.source, "message": str(e)},
    )


# ── MCP Server (mounted at /mcp) ──────────────────────────────────────────────

mcp = FastMCP(
    name="Wallet Chat Assistant",
    instructions=(
        "Crypto wallet assistant for the Solana ecosystem. Chat about market "
        "conditions, get cached market analysis with sentiment, trends and "
        "per-token technical signals."
    ),
)


@mcp.tool()
async def chat_mcp(
    prompt: str,
    wallet_address: Optional[str] = None,
    balance: float = 0.0,
) -> dict:
    """
    Ask the wallet assistant a question.

    Args:
        prompt:         The user's message.
        wallet_address: Connected wallet address, if any.
        balance:        SOL balance of the connected wallet.

    Returns:
        The assistant reply with suggestions and, for market questions, the analysis.
    """
    context = ChatContext(
        wallet_connected=bool(wallet_address),
        wallet_address=wallet_address,
        balance=balance,
    )
    response = await get_assistant().respond(ChatRequest(prompt=prompt, context=context))
    return response.model_dump(mode="json")


@mcp.tool()
async def market_analysis_mcp(token: Optional[str] = None) -> dict:
    """
    Current market analysis (refreshed at most every 5 minutes).

    Args:
        token: Optional symbol (e.g. SOL) to single out its technical signal.
    """
    result = await get_intelligence().get_comprehensive_analysis(token)
    return result.model_dump(mode="json")


@mcp.tool()
async def technical_analysis_mcp(token: str) -> dict:
    """Technical signal (sentiment, MACD/RSI-style indicators, MA trend) for one token."""
    signal = await get_intelligence().analyze_price_trend(token)
    if signal is None:
        return {"token": token.upper(), "error": "Token is not tracked"}
    return {"token": token.upper(), **signal.model_dump(mode="json")}


# ── App ───────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="Wallet Chat Assistant",
    description=(
        "Backend for a Solana wallet chat assistant. Answers natural-language questions "
        "with live market context, suggests follow-ups, and extracts validated transfer "
        "and swap intents for the wallet front-end to confirm.\n\n"
        "Exposes **REST** (`/chat`, `/market/*`) and **MCP** (`/mcp`) endpoints."
    ),
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/mcp", mcp.http_app())


# ── Info ──────────────────────────────────────────────────────────────────────


@app.get("/", tags=["Info"])
def root(request: Request):
    base = str(request.base_url).rstrip("/")
    return {
        "name": "Wallet Chat Assistant",
        "version": VERSION,
        "endpoints": {
            "docs": f"{base}/docs",
            "health": f"{base}/health",
            "chat": f"{base}/chat",
            "market_analysis": f"{base}/market/analysis",
            "market_sentiment": f"{base}/market/sentiment",
            "technical_analysis": f"{base}/market/technical/{{symbol}}",
            "mcp": f"{base}/mcp",
        },
    }


@app.get("/health", response_model=HealthResponse, tags=["Info"])
def health():
    return HealthResponse(status="ok", version=VERSION)


# ── Chat ──────────────────────────────────────────────────────────────────────


@app.post("/chat", response_model=ChatResponse, tags=["Chat"])
async def chat(req: ChatRequest, assistant: WalletAssistant = Depends(get_assistant)):
    """
    Answer a chat message.

    Always returns 200: model or market-data failures come back as a
    conversational message with generic suggestions.
    """
    return await assistant.respond(req)


# ── Market ────────────────────────────────────────────────────────────────────


@app.get("/market/analysis", response_model=ComprehensiveAnalysis, tags=["Market"])
async def market_analysis(
    token: Optional[str] = Query(
        default=None, description="Symbol to single out, e.g. SOL"
    ),
    intel: MarketIntelligence = Depends(get_intelligence),
):
    """Cached market analysis. Recomputed when older than 5 minutes."""
    result = await intel.try_get_analysis()
    if not result.ok:
        raise market_http_error(result.error)
    return comprehensive_view(result.analysis, token)


@app.get("/market/sentiment", response_model=SentimentSnapshot, tags=["Market"])
async def market_sentiment(intel: MarketIntelligence = Depends(get_intelligence)):
    try:
        return await intel.get_market_sentiment()
    except MarketDataError as e:
        raise market_http_error(e)


@app.get("/market/technical/{symbol}", response_model=TechnicalSignal, tags=["Market"])
async def technical_analysis(
    symbol: str, intel: MarketIntelligence = Depends(get_intelligence)
):
    try:
        signal = await intel.analyze_price_trend(symbol)
    except MarketDataError as e:
        raise market_http_error(e)
    if signal is None:
        raise HTTPException(status_code=404, detail=f"{symbol.upper()} is not tracked")
    return signal


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("APP_ENV", "development") == "development",
    )
