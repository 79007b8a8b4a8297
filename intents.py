"""
Transfer and swap intents embedded in model replies.

The model is asked to close an actionable reply with a fenced ```json block.
The block is parsed here and validated against the wallet state before the
front-end is allowed to open a confirmation dialog for it.
"""

import json
import re
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from errors import IntentValidationError
from models import Intent, SwapIntent, TransferIntent
from utils import is_solana_address

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
_INTENT_TYPES = {"TRANSFER", "SWAP"}

_intent_adapter = TypeAdapter(Intent)


def find_intent_payload(text: str) -> tuple[Optional[dict], str]:
    """
    Return the last intent-looking JSON object in ``text`` and the text with
    that block removed. Blocks that are not intents are left in place.
    """
    for match in reversed(list(_FENCED_JSON.finditer(text))):
        try:
            payload = json.loads(match.group(1))
        except json.JSONDecodeError:
            continue
        if isinstance(payload, dict) and str(payload.get("type", "")).upper() in _INTENT_TYPES:
            stripped = (text[:match.start()] + text[match.end():]).strip()
            return payload, stripped
    return None, text


def validate_intent(payload: dict, wallet_connected: bool) -> Intent:
    if not wallet_connected:
        raise IntentValidationError("Wallet not connected")

    kind = str(payload.get("type", "")).upper()
    payload = {**payload, "type": kind}

    if kind == "SWAP":
        if not payload.get("fromToken", payload.get("from_token")) or not payload.get(
            "toToken", payload.get("to_token")
        ):
            raise IntentValidationError("Invalid swap parameters")
    elif kind == "TRANSFER":
        if not payload.get("recipient") or not payload.get("amount"):
            raise IntentValidationError("Invalid transfer parameters")
    else:
        raise IntentValidationError(f"Unsupported intent type '{kind}'")

    try:
        intent = _intent_adapter.validate_python(payload)
    except ValidationError as e:
        field = ".".join(str(p) for p in e.errors()[0]["loc"][1:]) or "intent"
        raise IntentValidationError(f"Invalid {kind.lower()} parameters ({field})") from e

    if isinstance(intent, TransferIntent):
        if not is_solana_address(intent.recipient):
            raise IntentValidationError(
                f"Recipient is not a Solana address: {intent.recipient}"
            )
    elif isinstance(intent, SwapIntent):
        if intent.from_token.upper() == intent.to_token.upper():
            raise IntentValidationError("Cannot swap a token for itself")

    return intent
