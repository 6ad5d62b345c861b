from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from pydantic import BaseModel


@dataclass(frozen=True, order=True)
class Money:
    """Non-negative amount held as integer cents."""

    cents: int

    @classmethod
    def parse(cls, text: str) -> "Money":
        """Build from a matched price string, stripping thousands separators."""
        value = Decimal(text.replace(",", ""))
        return cls(int((value * 100).to_integral_value(rounding=ROUND_HALF_UP)))

    @property
    def amount(self) -> Decimal:
        return Decimal(self.cents).scaleb(-2)

    def __str__(self) -> str:
        return f"{self.cents // 100}.{self.cents % 100:02d}"


class LabeledAmount(BaseModel):
    label: str  # Subtotal, Total, Amount, Tax or Discount
    amount: Money


class ExtractionResult(BaseModel):
    all_prices: list[Money] = []
    item_prices: list[Money] = []
    labeled_prices: list[LabeledAmount] = []
    total: Money | None = None  # None when no total could be resolved


class RecognitionError(Exception):
    """The OCR engine failed on the submitted image."""


class NoTextRecognized(RecognitionError):
    """The OCR engine ran but found no text."""


class RecognizerUnavailable(ValueError):
    """The configured OCR engine cannot run in this environment."""


class TextRecognizer(Protocol):
    async def recognize(self, image_bytes: bytes, content_type: str) -> list[str]: ...
