import logging
import time
from typing import Optional, Protocol

from errors import IntentValidationError
from intents import find_intent_payload, validate_intent
from market_intelligence import MarketIntelligence
from models import (
    ChatContext,
    ChatRequest,
    ChatResponse,
    ExpertiseLevel,
    LLMReply,
    ResponseAnalysis,
)
from prompts import TOOLS, build_system_prompt, resolve_expertise

logger = logging.getLogger(__name__)


PROCESSING_ERROR_MESSAGE = (
    "I encountered an error processing your request. Let me try a different approach "
    "- what specifically would you like to know?"
)
PROCESSING_ERROR_SUGGESTIONS = [
    "Check market trends",
    "Analyze token performance",
    "View wallet stats",
]

UNEXPECTED_ERROR_MESSAGE = (
    "I encountered an unexpected issue. Let me know what specific information "
    "you're looking for, and I'll help you out."
)
UNEXPECTED_ERROR_SUGGESTIONS = [
    "Check market trends",
    "View wallet balance",
    "Learn about DeFi",
]

MARKET_TERMS = ("price", "market", "trend", "analysis", "movement", "prediction")

MARKET_SUGGESTIONS = [
    "Show detailed market analysis",
    "Compare with other tokens",
    "Check historical trends",
]
WALLET_SUGGESTIONS = [
    "Check my portfolio performance",
    "Show my transaction history",
    "Analyze my trading patterns",
]
EDUCATIONAL_SUGGESTIONS = {
    ExpertiseLevel.BEGINNER: "Explain blockchain basics",
    ExpertiseLevel.ADVANCED: "Show advanced trading metrics",
}
MAX_SUGGESTIONS = 3


class LLMClient(Protocol):
    async def complete(
        self, system_prompt: str, query: str, tools: Optional[list[dict]] = None
    ) -> LLMReply:
        ...


def is_market_query(query: str) -> bool:
    lowered = query.lower()
    return any(term in lowered for term in MARKET_TERMS)


def generate_suggestions(
    query: str, wallet_connected: bool, expertise_level: ExpertiseLevel
) -> list[str]:
    suggestions: list[str] = []
    if is_market_query(query):
        suggestions.extend(MARKET_SUGGESTIONS)
    if wallet_connected:
        suggestions.extend(WALLET_SUGGESTIONS)
    educational = EDUCATIONAL_SUGGESTIONS.get(expertise_level)
    if educational:
        suggestions.append(educational)
    return suggestions[:MAX_SUGGESTIONS]


class WalletAssistant:
    """Turns a chat utterance plus wallet context into an enriched model reply."""

    def __init__(self, llm: LLMClient, intelligence: MarketIntelligence):
        self.llm = llm
        self.intelligence = intelligence

    async def process_query(self, query: str, context: ChatContext) -> ChatResponse:
        try:
            expertise = resolve_expertise(context, query)
            analysis = await self.intelligence.get_analysis()
            system_prompt = build_system_prompt(context, expertise, analysis)
            reply = await self.llm.complete(system_prompt, query, TOOLS)
            return await self._enhance(reply, query, context, expertise)
        except Exception:
            logger.exception("Chat query failed")
            return ChatResponse(
                message=PROCESSING_ERROR_MESSAGE,
                suggestions=list(PROCESSING_ERROR_SUGGESTIONS),
            )

    async def _enhance(
        self,
        reply: LLMReply,
        query: str,
        context: ChatContext,
        expertise: ExpertiseLevel,
    ) -> ChatResponse:
        message = reply.text
        intent = None

        payload, stripped = find_intent_payload(message)
        if payload is not None:
            try:
                intent = validate_intent(payload, context.wallet_connected)
                message = stripped or intent.response or message
            except IntentValidationError as e:
                logger.info("Rejected %s intent: %s", payload.get("type"), e)
                message = f"{stripped}\n\nError: {e}. Please try again.".strip()

        analysis = None
        if is_market_query(query):
            # Still fresh from the prompt-building read, so no extra fetch
            market = await self.intelligence.get_analysis()
            analysis = ResponseAnalysis(market_context=market, sentiment=market.sentiment)

        return ChatResponse(
            message=message,
            intent=intent,
            suggestions=generate_suggestions(query, context.wallet_connected, expertise),
            analysis=analysis,
            tool_calls=reply.tool_calls,
        )

    async def respond(self, request: ChatRequest) -> ChatResponse:
        """Entry point for the chat front-end."""
        started = time.time()
        try:
            response = await self.process_query(request.prompt, request.context)
        except Exception:
            logger.exception("Unexpected failure while answering chat request")
            return ChatResponse(
                message=UNEXPECTED_ERROR_MESSAGE,
                suggestions=list(UNEXPECTED_ERROR_SUGGESTIONS),
            )

        client_start = request.context.start_time or started
        logger.info(
            "Chat session=%s wallet=%s intent=%s responded in %dms",
            request.context.session_id or "-",
            request.context.wallet_connected,
            response.intent.type if response.intent else None,
            int((time.time() - client_start) * 1000),
        )
        return response
