import json
import logging
import os
from typing import Optional

from models import LLMReply, ToolCall
from prompts import anthropic_tools

logger = logging.getLogger(__name__)


class ChatAgent:
    """Single chat-completion call against the configured LLM provider."""

    def __init__(self):
        self.provider = os.getenv("AI_PROVIDER", "openai").lower()
        self.temperature = float(os.getenv("AI_TEMPERATURE", "0.7"))
        self.max_tokens = int(os.getenv("AI_MAX_TOKENS", "1000"))

        if self.provider == "anthropic":
            self._init_anthropic()
        elif self.provider == "gemini":
            self._init_gemini()
        elif self.provider == "openai":
            self._init_openai()
        else:
            raise ValueError(
                f"Unknown AI_PROVIDER '{self.provider}'. "
                "Set AI_PROVIDER to 'anthropic', 'openai', or 'gemini'."
            )

    # ── Provider Init ─────────────────────────────────────────────────────

    def _init_anthropic(self):
        import anthropic

        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise EnvironmentError("ANTHROPIC_API_KEY is not set.")
        self.client = anthropic.AsyncAnthropic(api_key=api_key)
        self.model = os.getenv("CLAUDE_MODEL", "claude-sonnet-4-6")
        logger.info("AI Provider: Anthropic | Model: %s", self.model)

    def _init_gemini(self):
        import google.generativeai as genai

        api_key = os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise EnvironmentError("GEMINI_API_KEY is not set.")
        genai.configure(api_key=api_key)
        self.model = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
        self.client = genai.GenerativeModel(self.model)
        logger.info("AI Provider: Gemini | Model: %s", self.model)

    def _init_openai(self):
        from openai import AsyncOpenAI

        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise EnvironmentError("OPENAI_API_KEY is not set.")
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = os.getenv("OPENAI_MODEL", "gpt-4o")
        logger.info("AI Provider: OpenAI | Model: %s", self.model)

    # ── Completion ────────────────────────────────────────────────────────

    async def complete(
        self, system_prompt: str, query: str, tools: Optional[list[dict]] = None
    ) -> LLMReply:
        if self.provider == "anthropic":
            return await self._call_anthropic(system_prompt, query, tools)
        elif self.provider == "gemini":
            return await self._call_gemini(system_prompt, query)
        return await self._call_openai(system_prompt, query, tools)

    async def _call_anthropic(
        self, system_prompt: str, query: str, tools: Optional[list[dict]]
    ) -> LLMReply:
        kwargs = {}
        if tools:
            kwargs["tools"] = anthropic_tools(tools)
        message = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": query}],
            **kwargs,
        )
        text_parts = []
        tool_calls = []
        for block in message.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(ToolCall(name=block.name, arguments=dict(block.input)))
        return LLMReply(text="".join(text_parts), tool_calls=tool_calls)

    async def _call_gemini(self, system_prompt: str, query: str) -> LLMReply:
        # Tool declarations are not forwarded to Gemini; replies are text only
        response = await self.client.generate_content_async(f"{system_prompt}\n\n{query}")
        return LLMReply(text=response.text)

    async def _call_openai(
        self, system_prompt: str, query: str, tools: Optional[list[dict]]
    ) -> LLMReply:
        kwargs = {}
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": query},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            **kwargs,
        )
        message = response.choices[0].message
        tool_calls = []
        for call in message.tool_calls or []:
            try:
                arguments = json.loads(call.function.arguments or "{}")
            except json.JSONDecodeError:
                logger.warning("Unparseable arguments for tool %s", call.function.name)
                arguments = {}
            tool_calls.append(ToolCall(name=call.function.name, arguments=arguments))
        return LLMReply(text=message.content or "", tool_calls=tool_calls)
