from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from models import MarketAnalysis


class FailureKind(str, Enum):
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    MALFORMED_PAYLOAD = "malformed_payload"


class MarketDataError(Exception):
    """Base class for failures raised by market data providers."""

    kind: FailureKind = FailureKind.PROVIDER_UNAVAILABLE

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")


class ProviderUnavailableError(MarketDataError):
    """Network error, timeout or non-2xx status from a provider."""

    kind = FailureKind.PROVIDER_UNAVAILABLE


class MalformedPayloadError(MarketDataError):
    """Provider answered, but the payload did not have the expected shape."""

    kind = FailureKind.MALFORMED_PAYLOAD


class IntentValidationError(ValueError):
    pass


class AnalysisResult(BaseModel):
    """Either a market analysis or the tagged failure that prevented it."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    analysis: Optional[MarketAnalysis] = None
    error: Optional[MarketDataError] = None

    @property
    def failure(self) -> Optional[FailureKind]:
        return self.error.kind if self.error else None

    @property
    def ok(self) -> bool:
        return self.analysis is not None

    def unwrap(self) -> MarketAnalysis:
        if self.error is not None:
            raise self.error
        return self.analysis
