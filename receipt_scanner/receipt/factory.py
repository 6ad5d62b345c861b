import os

from receipt_scanner.receipt.base import TextRecognizer
from receipt_scanner.receipt.openai_provider import OpenAITextRecognizer
from receipt_scanner.receipt.price_parser import ParserConfig
from receipt_scanner.receipt.tesseract_provider import TesseractTextRecognizer


def get_text_recognizer() -> TextRecognizer:
    """Return the configured text recognition provider."""
    provider = os.getenv("TEXT_RECOGNIZER", "tesseract")
    if provider == "tesseract":
        return TesseractTextRecognizer(tesseract_cmd=os.getenv("TESSERACT_CMD"))
    if provider == "openai":
        return OpenAITextRecognizer(model=os.getenv("OPENAI_OCR_MODEL", "gpt-4o"))
    raise ValueError(f"Unknown text recognizer: {provider}")


def get_parser_config() -> ParserConfig:
    return ParserConfig.from_env()
