"""Price extraction from raw OCR text.

Every rule below is a plain function over the text (or a single line) so it can
be exercised on its own. ``parse`` composes them in a fixed order:

1. candidate prices (currency-marked first, then bare decimals)
2. labeled amounts (Subtotal, Total, Amount, Tax, Discount)
3. total resolution (explicit two-decimal total, else the largest price)
4. item prices (lines above the first summary line)

Nothing here raises on odd input; unmatched text yields empty results.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
import logging
import os
import re
from typing import Iterable, Iterator

from receipt_scanner.receipt.base import ExtractionResult, LabeledAmount, Money

logger = logging.getLogger(__name__)

# Digits with optional thousands separators and a 1-2 digit fraction. The
# lookahead keeps "1.234" or "1,234.567" from being read as a shorter price.
AMOUNT = r"(\d[\d,]*(?:\.\d{1,2})?)(?!\d|[.,]\d)"
STRICT_AMOUNT = r"(\d[\d,]*\.\d{2})(?!\d|[.,]\d)"
# A digit-comma prefix means the match is the tail of "1,250.00", not a price.
DECIMAL_PRICE_RE = re.compile(r"(?<!\d,)\b(\d{1,6}\.\d{2})\b")
# A keyword preceded by "sub" (any spacing) belongs to a subtotal label.
SUB_PREFIX_RE = re.compile(r"sub\s*\Z", re.IGNORECASE)

DEFAULT_LABELS: tuple[tuple[str, str], ...] = (
    ("Subtotal", r"sub\s*total"),
    ("Total", r"total"),
    ("Amount", r"amount"),
    ("Tax", r"tax"),
    ("Discount", r"discount"),
)
DEFAULT_SUMMARY_KEYWORDS: tuple[str, ...] = ("subtotal", "total", "tax", "discount", "payment")


@dataclass(frozen=True)
class ParserConfig:
    ceiling_all: Decimal = Decimal("100000")
    ceiling_item: Decimal = Decimal("1000")
    currency_symbol: str = "$"
    labels: tuple[tuple[str, str], ...] = DEFAULT_LABELS  # (label, keyword regex), scan order
    summary_keywords: tuple[str, ...] = DEFAULT_SUMMARY_KEYWORDS
    total_label: str = "Total"

    @classmethod
    def from_env(cls) -> "ParserConfig":
        """Read ceilings, symbol and summary keywords from the environment."""
        keywords = os.getenv("SUMMARY_KEYWORDS", "")
        summary_keywords = tuple(k.strip().lower() for k in keywords.split(",") if k.strip())
        symbol = os.getenv("CURRENCY_SYMBOL", "").strip()
        if not symbol:
            symbol = cls.currency_symbol
        return cls(
            ceiling_all=_ceiling_from_env("PRICE_CEILING_ALL", cls.ceiling_all),
            ceiling_item=_ceiling_from_env("PRICE_CEILING_ITEM", cls.ceiling_item),
            currency_symbol=symbol,
            summary_keywords=summary_keywords or DEFAULT_SUMMARY_KEYWORDS,
        )


DEFAULT_CONFIG = ParserConfig()


def _ceiling_from_env(name: str, default: Decimal) -> Decimal:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        value = None
    if value is None or not value.is_finite() or value <= 0:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default
    return value


def _labeled_pattern(keyword: str, symbol: str, amount: str = AMOUNT) -> re.Pattern[str]:
    return re.compile(
        rf"{keyword}\s*:?\s*(?:{re.escape(symbol)})?\s*{amount}",
        re.IGNORECASE,
    )


def _search_label(pattern: re.Pattern[str], text: str) -> re.Match[str] | None:
    """First match whose keyword is not the tail of a "sub ..." label."""
    for match in pattern.finditer(text):
        if not SUB_PREFIX_RE.search(text, 0, match.start()):
            return match
    return None


def join_lines(lines: Iterable[str]) -> str:
    """Join recognizer output into the single text block the parser reads."""
    return "\n".join(lines)


def find_currency_prices(text: str, symbol: str = "$") -> Iterator[Money]:
    """Yield every amount written right after the currency symbol."""
    for match in re.finditer(rf"{re.escape(symbol)}\s*{AMOUNT}", text):
        yield Money.parse(match.group(1))


def find_decimal_prices(text: str) -> Iterator[Money]:
    """Yield standalone decimals with exactly two fractional digits."""
    for match in DECIMAL_PRICE_RE.finditer(text):
        yield Money.parse(match.group(1))


def collect_all_prices(text: str, config: ParserConfig = DEFAULT_CONFIG) -> list[Money]:
    # dict as an insertion-ordered set
    prices: dict[Money, None] = {}
    for price in find_currency_prices(text, config.currency_symbol):
        # zero is accepted here but not for bare decimals
        if price.amount < config.ceiling_all:
            prices.setdefault(price)
    for price in find_decimal_prices(text):
        if 0 < price.amount < config.ceiling_all:
            prices.setdefault(price)
    return list(prices)


def extract_labeled_amounts(text: str, config: ParserConfig = DEFAULT_CONFIG) -> list[LabeledAmount]:
    """Take the first match per label, skipping amounts an earlier label already claimed."""
    labeled: list[LabeledAmount] = []
    seen: set[Money] = set()
    for label, keyword in config.labels:
        match = _search_label(_labeled_pattern(keyword, config.currency_symbol), text)
        if not match:
            continue
        amount = Money.parse(match.group(1))
        if amount in seen or amount.amount >= config.ceiling_all:
            continue
        labeled.append(LabeledAmount(label=label, amount=amount))
        seen.add(amount)
    return labeled


def resolve_total(
    text: str, all_prices: list[Money], config: ParserConfig = DEFAULT_CONFIG
) -> Money | None:
    """Explicit total with two decimals, else the largest price seen, else None."""
    keyword = dict(config.labels).get(config.total_label)
    if keyword:
        match = _search_label(_labeled_pattern(keyword, config.currency_symbol, STRICT_AMOUNT), text)
        if match:
            total = Money.parse(match.group(1))
            if total.amount < config.ceiling_all:
                return total
    if all_prices:
        return max(all_prices)
    return None


def is_summary_line(line: str, keywords: Iterable[str] = DEFAULT_SUMMARY_KEYWORDS) -> bool:
    lowered = line.lower()
    return any(keyword.lower() in lowered for keyword in keywords)


def extract_item_prices(text: str, config: ParserConfig = DEFAULT_CONFIG) -> list[Money]:
    """First price on each line above the summary zone.

    The summary zone starts at the first line naming a summary keyword and runs
    to the end of the text; that line's own price is not an item either.
    """
    items: dict[Money, None] = {}
    for line in text.split("\n"):
        line = line.rstrip("\r")
        if is_summary_line(line, config.summary_keywords):
            break
        match = DECIMAL_PRICE_RE.search(line)
        if not match:
            continue
        price = Money.parse(match.group(1))
        if 0 < price.amount < config.ceiling_item:
            items.setdefault(price)
    return list(items)


def parse(text: str, config: ParserConfig | None = None) -> ExtractionResult:
    """Extract prices, item prices, labeled amounts and a total from OCR text."""
    config = config or DEFAULT_CONFIG
    all_prices = collect_all_prices(text, config)
    result = ExtractionResult(
        all_prices=all_prices,
        item_prices=extract_item_prices(text, config),
        labeled_prices=extract_labeled_amounts(text, config),
        total=resolve_total(text, all_prices, config),
    )
    logger.debug(
        f"Parsed {len(result.all_prices)} prices, {len(result.item_prices)} items, "
        f"{len(result.labeled_prices)} labeled, total={result.total}"
    )
    return result
