import pytest

from errors import IntentValidationError
from intents import find_intent_payload, validate_intent
from models import SwapIntent, TransferIntent

RECIPIENT = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"


@pytest.mark.unit
def test_find_intent_payload_strips_block():
    text = (
        "Sure, sending 0.5 SOL.\n"
        "```json\n"
        '{"type": "TRANSFER", "token": "SOL", "amount": 0.5, "recipient": "abc"}\n'
        "```"
    )
    payload, stripped = find_intent_payload(text)
    assert payload["type"] == "TRANSFER"
    assert payload["amount"] == 0.5
    assert stripped == "Sure, sending 0.5 SOL."


@pytest.mark.unit
def test_find_intent_payload_ignores_other_json():
    text = 'Example config:\n```json\n{"rpc": "mainnet"}\n```\nand ```not json```'
    payload, stripped = find_intent_payload(text)
    assert payload is None
    assert stripped == text


@pytest.mark.unit
def test_validate_transfer():
    intent = validate_intent(
        {"type": "transfer", "token": "USDC", "amount": "2.5", "recipient": RECIPIENT,
         "autoExecute": True},
        wallet_connected=True,
    )
    assert isinstance(intent, TransferIntent)
    assert intent.type == "TRANSFER"
    assert intent.amount == 2.5
    assert intent.auto_execute is True


@pytest.mark.unit
def test_validate_swap():
    intent = validate_intent(
        {"type": "SWAP", "fromToken": "SOL", "toToken": "USDC", "amount": 1},
        wallet_connected=True,
    )
    assert isinstance(intent, SwapIntent)
    assert (intent.from_token, intent.to_token) == ("SOL", "USDC")
    assert intent.auto_execute is False


@pytest.mark.unit
@pytest.mark.parametrize(
    "payload, connected, message",
    [
        ({"type": "TRANSFER", "amount": 1, "recipient": RECIPIENT}, False, "Wallet not connected"),
        ({"type": "TRANSFER", "amount": 1}, True, "Invalid transfer parameters"),
        ({"type": "TRANSFER", "recipient": RECIPIENT}, True, "Invalid transfer parameters"),
        ({"type": "TRANSFER", "amount": -1, "recipient": RECIPIENT}, True,
         "Invalid transfer parameters (amount)"),
        ({"type": "TRANSFER", "amount": 1, "recipient": "not-an-address"}, True,
         "Recipient is not a Solana address: not-an-address"),
        ({"type": "SWAP", "fromToken": "SOL"}, True, "Invalid swap parameters"),
        ({"type": "SWAP", "fromToken": "SOL", "toToken": "sol"}, True,
         "Cannot swap a token for itself"),
        ({"type": "STAKE", "amount": 1}, True, "Unsupported intent type 'STAKE'"),
    ],
)
def test_validate_intent_rejects(payload, connected, message):
    with pytest.raises(IntentValidationError) as exc:
        validate_intent(payload, wallet_connected=connected)
    assert str(exc.value) == message


@pytest.mark.unit
@pytest.mark.parametrize(
    "recipient",
    [
        "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045",
        "bc1qar0srrr7xfkvy5l643lydnw9re59gtzzwf5mdq",
        "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa",
    ],
)
def test_transfer_to_other_chain_address_is_rejected(recipient):
    with pytest.raises(IntentValidationError) as exc:
        validate_intent(
            {"type": "TRANSFER", "token": "SOL", "amount": 1, "recipient": recipient},
            wallet_connected=True,
        )
    assert str(exc.value) == f"Recipient is not a Solana address: {recipient}"
