import pytest

from models import ChatContext, ChatTurn, ExpertiseLevel
from prompts import (
    TOOLS,
    anthropic_tools,
    build_system_prompt,
    detect_expertise,
    resolve_expertise,
)
from technical_analysis import build_analysis

WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"


@pytest.mark.unit
@pytest.mark.parametrize(
    "utterances, expected",
    [
        ([], ExpertiseLevel.BEGINNER),
        (["what is solana?"], ExpertiseLevel.BEGINNER),
        (["How does STAKING work?"], ExpertiseLevel.INTERMEDIATE),
        (["swap 1 sol", "what about impermanent loss"], ExpertiseLevel.ADVANCED),
        (["I farm a Liquidity Pool", "explain nft"], ExpertiseLevel.ADVANCED),
    ],
)
def test_detect_expertise(utterances, expected):
    assert detect_expertise(utterances) == expected


@pytest.mark.unit
def test_resolve_expertise_prefers_explicit_level():
    context = ChatContext(
        expertise_level=ExpertiseLevel.INTERMEDIATE,
        previous_interactions=[ChatTurn(prompt="tell me about MEV")],
    )
    assert resolve_expertise(context, "hi") == ExpertiseLevel.INTERMEDIATE


@pytest.mark.unit
def test_resolve_expertise_only_looks_at_recent_turns():
    old = [ChatTurn(prompt="yield farming strategies")]
    recent = [ChatTurn(prompt="hello", response="hi!") for _ in range(5)]
    context = ChatContext(previous_interactions=old + recent)

    assert resolve_expertise(context, "what's new?") == ExpertiseLevel.BEGINNER
    assert resolve_expertise(context, "should I stake via defi?") == ExpertiseLevel.INTERMEDIATE


@pytest.mark.unit
def test_prompt_without_wallet_or_analysis():
    prompt = build_system_prompt(ChatContext(), ExpertiseLevel.BEGINNER)

    assert "Wallet status: Not connected" in prompt
    assert "Market sentiment: Neutral" in prompt
    assert "Notable trends: No significant trends" in prompt
    assert "Expertise level: beginner" in prompt


@pytest.mark.unit
def test_prompt_with_connected_wallet_and_analysis(scenario_records, provider):
    analysis = build_analysis(scenario_records, provider.sentiment, provider.on_chain)
    context = ChatContext(
        wallet_connected=True,
        wallet_address=WALLET,
        balance=1.5,
        token_balances=[{"symbol": "USDC"}, {"symbol": "BONK"}],
    )

    prompt = build_system_prompt(context, ExpertiseLevel.ADVANCED, analysis)

    assert "Wallet status: Connected (7xKXtg...osgAsU)" in prompt
    assert "Balance: 1.5000 SOL" in prompt
    assert "Other tokens: 2 tokens" in prompt
    assert "Market sentiment: Bullish" in prompt
    assert analysis.overview in prompt
    assert "SOL 3.00%" in prompt
    assert "Expertise level: advanced" in prompt
    assert '"type": "TRANSFER"' in prompt


@pytest.mark.unit
def test_tool_declarations():
    names = [t["function"]["name"] for t in TOOLS]
    assert names == ["analyzeMarket", "getTechnicalAnalysis"]
    technical = TOOLS[1]["function"]["parameters"]
    assert technical["required"] == ["token"]
    assert technical["properties"]["timeframe"]["enum"] == ["1h", "4h", "1d", "1w"]

    converted = anthropic_tools(TOOLS)
    assert converted[0]["name"] == "analyzeMarket"
    assert converted[1]["input_schema"] is technical
