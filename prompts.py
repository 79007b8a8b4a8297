from typing import Iterable, Optional

from models import ChatContext, ExpertiseLevel, MarketAnalysis
from utils import short_address


SYSTEM_PROMPT = """You are an advanced AI assistant specializing in Web3 and crypto, with particular \
expertise in the Solana ecosystem. You have real-time access to:
- Market data and trends
- On-chain analytics
- Technical analysis
- Wallet data and transaction history
- Deep knowledge of DeFi protocols

Current market context:
- Market sentiment: {sentiment}
- Market overview: {overview}
- Notable trends: {trends}
- Market dominance: {dominance}

{wallet_status}

Expertise level: {expertise_level}

When responding:
1. Provide data-driven insights
2. Include relevant market context
3. Offer actionable suggestions
4. Maintain a professional but engaging tone
5. Cite sources when providing market data

If the user asks you to send or swap tokens, explain what will happen and end your \
reply with a fenced ```json block describing the action, e.g.
{{"type": "TRANSFER", "token": "SOL", "amount": 0.5, "recipient": "<address>"}} or
{{"type": "SWAP", "fromToken": "SOL", "toToken": "USDC", "amount": 1}}.
Never include such a block unless the user explicitly asked for the action."""


# ── Expertise detection ───────────────────────────────────────────────────────

ADVANCED_TERMS = ("liquidity pool", "impermanent loss", "mev", "yield farming", "amm")
INTERMEDIATE_TERMS = ("staking", "defi", "nft", "market cap", "swap")

EXPERTISE_WINDOW = 5


def detect_expertise(utterances: Iterable[str]) -> ExpertiseLevel:
    texts = [u.lower() for u in utterances if u]
    if any(term in text for text in texts for term in ADVANCED_TERMS):
        return ExpertiseLevel.ADVANCED
    if any(term in text for text in texts for term in INTERMEDIATE_TERMS):
        return ExpertiseLevel.INTERMEDIATE
    return ExpertiseLevel.BEGINNER


def resolve_expertise(context: ChatContext, query: str = "") -> ExpertiseLevel:
    """Explicit level from the client wins; otherwise infer from recent user turns."""
    if context.expertise_level is not None:
        return context.expertise_level
    recent = [t.prompt for t in context.previous_interactions[-EXPERTISE_WINDOW:]]
    return detect_expertise([*recent, query])


# ── System prompt ─────────────────────────────────────────────────────────────


def _wallet_status(context: ChatContext) -> str:
    if not context.wallet_connected:
        return "Wallet status: Not connected"
    address = short_address(context.wallet_address) if context.wallet_address else "unknown address"
    return (
        f"Wallet status: Connected ({address})\n"
        f"   Balance: {context.balance:.4f} SOL\n"
        f"   Other tokens: {len(context.token_balances)} tokens"
    )


def build_system_prompt(
    context: ChatContext,
    expertise_level: ExpertiseLevel,
    analysis: Optional[MarketAnalysis] = None,
) -> str:
    if analysis is None:
        sentiment = "Neutral"
        overview = "Data not available"
        trends = "No significant trends"
        dominance = "Data not available"
    else:
        sentiment = analysis.sentiment.overall.value.capitalize()
        overview = analysis.overview
        all_trends = [
            *analysis.trends.short_term,
            *analysis.trends.medium_term,
            *analysis.trends.emerging,
        ]
        trends = ", ".join(all_trends) or "No significant trends"
        dominance = ", ".join(
            f"{symbol} {share:.2f}%"
            for symbol, share in analysis.metrics.dominance_index.items()
        ) or "Data not available"

    return SYSTEM_PROMPT.format(
        sentiment=sentiment,
        overview=overview,
        trends=trends,
        dominance=dominance,
        wallet_status=_wallet_status(context),
        expertise_level=expertise_level.value,
    )


# ── Tool declarations (OpenAI function-calling schema) ───────────────────────

TOOLS: list[dict] = [
    {
        "type": "function",
        "function": {
            "name": "analyzeMarket",
            "description": "Analyze current market conditions and trends",
            "parameters": {
                "type": "object",
                "properties": {
                    "timeframe": {
                        "type": "string",
                        "enum": ["24h", "7d", "30d"],
                    },
                    "metrics": {
                        "type": "array",
                        "items": {
                            "type": "string",
                            "enum": ["price", "volume", "social_sentiment", "dev_activity"],
                        },
                    },
                },
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "getTechnicalAnalysis",
            "description": "Get technical analysis for a specific token",
            "parameters": {
                "type": "object",
                "properties": {
                    "token": {
                        "type": "string",
                        "description": "Token symbol (e.g., SOL, BONK)",
                    },
                    "timeframe": {
                        "type": "string",
                        "enum": ["1h", "4h", "1d", "1w"],
                    },
                },
                "required": ["token"],
            },
        },
    },
]


def anthropic_tools(tools: list[dict]) -> list[dict]:
    """Convert OpenAI-style tool declarations to Anthropic's format."""
    return [
        {
            "name": t["function"]["name"],
            "description": t["function"]["description"],
            "input_schema": t["function"]["parameters"],
        }
        for t in tools
    ]
