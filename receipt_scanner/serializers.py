from receipt_scanner.receipt.base import ExtractionResult, Money

UNKNOWN_TOTAL = "N/A"


def serialize_money(money: Money | None) -> str:
    if money is None:
        return UNKNOWN_TOTAL
    return str(money)


def serialize_extraction(result: ExtractionResult, raw_text: str) -> dict:
    """Shape a parse result for the client; money is always a two-decimal string."""
    return {
        "allPrices": [str(p) for p in result.all_prices],
        "itemPrices": [str(p) for p in result.item_prices],
        "labeledPrices": [
            {"label": entry.label, "value": str(entry.amount)}
            for entry in result.labeled_prices
        ],
        "total": serialize_money(result.total),
        "rawText": raw_text,
    }
