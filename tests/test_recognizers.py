"""Tests for the text recognition providers and their factory."""

import asyncio
from io import BytesIO
from unittest.mock import AsyncMock, Mock, patch

from PIL import Image
import pytest
import pytesseract

from receipt_scanner.receipt.base import NoTextRecognized, RecognitionError, RecognizerUnavailable
from receipt_scanner.receipt.factory import get_parser_config, get_text_recognizer
from receipt_scanner.receipt.openai_provider import OpenAITextRecognizer, RecognizedText, Runner
from receipt_scanner.receipt.price_parser import ParserConfig
from receipt_scanner.receipt.tesseract_provider import TesseractTextRecognizer, preprocess_image

IMAGE_TO_STRING = "receipt_scanner.receipt.tesseract_provider.pytesseract.image_to_string"


def make_png(size=(100, 50), mode="RGBA") -> bytes:
    buffer = BytesIO()
    Image.new(mode, size, "white").save(buffer, format="PNG")
    return buffer.getvalue()


class TestPreprocessImage:
    """Test image preparation before OCR."""

    def test_small_image_upscaled_to_grayscale(self) -> None:
        image = preprocess_image(make_png((100, 50)))
        assert image.mode == "L"
        assert image.size == (1000, 500)

    def test_large_image_downscaled(self) -> None:
        image = preprocess_image(make_png((4000, 1000), mode="RGB"))
        assert image.size == (2000, 500)

    def test_unreadable_bytes(self) -> None:
        with pytest.raises(RecognitionError):
            preprocess_image(b"not an image")


class TestTesseractTextRecognizer:
    """Test the Tesseract provider with the OCR call mocked."""

    def test_recognize_returns_stripped_lines(self) -> None:
        with patch(IMAGE_TO_STRING, return_value="Coffee 3.50\n\n   \n Total: $3.50 \n") as mock_ocr:
            lines = asyncio.run(TesseractTextRecognizer().recognize(make_png(), "image/png"))

        assert lines == ["Coffee 3.50", "Total: $3.50"]
        assert mock_ocr.call_args.kwargs["config"] == "--oem 3 --psm 6"

    def test_blank_result(self) -> None:
        with patch(IMAGE_TO_STRING, return_value=" \n\n"):
            with pytest.raises(NoTextRecognized):
                asyncio.run(TesseractTextRecognizer().recognize(make_png(), "image/png"))

    def test_binary_missing(self) -> None:
        with patch(IMAGE_TO_STRING, side_effect=pytesseract.TesseractNotFoundError()):
            with pytest.raises(RecognizerUnavailable):
                asyncio.run(TesseractTextRecognizer().recognize(make_png(), "image/png"))

    def test_engine_error(self) -> None:
        with patch(IMAGE_TO_STRING, side_effect=pytesseract.TesseractError(1, "boom")):
            with pytest.raises(RecognitionError):
                asyncio.run(TesseractTextRecognizer().recognize(make_png(), "image/png"))

    def test_custom_binary_path(self, monkeypatch) -> None:
        monkeypatch.setattr(pytesseract.pytesseract, "tesseract_cmd", "tesseract")
        TesseractTextRecognizer(tesseract_cmd="/opt/bin/tesseract")
        assert pytesseract.pytesseract.tesseract_cmd == "/opt/bin/tesseract"


class TestOpenAITextRecognizer:
    """Test the vision model provider with the agent run mocked."""

    def test_recognize(self) -> None:
        run_result = Mock(final_output=RecognizedText(lines=["Coffee 3.50", "  ", "Total: $3.50"]))
        with patch.object(Runner, "run", new=AsyncMock(return_value=run_result)) as mock_run:
            lines = asyncio.run(OpenAITextRecognizer().recognize(b"img", "image/jpeg"))

        assert lines == ["Coffee 3.50", "Total: $3.50"]
        content = mock_run.call_args.kwargs["input"][0]["content"]
        assert content[1]["image_url"] == "data:image/jpeg;base64,aW1n"

    def test_empty_transcription(self) -> None:
        run_result = Mock(final_output=RecognizedText(lines=[]))
        with patch.object(Runner, "run", new=AsyncMock(return_value=run_result)):
            with pytest.raises(NoTextRecognized):
                asyncio.run(OpenAITextRecognizer().recognize(b"img", "image/jpeg"))

    def test_request_failure(self) -> None:
        with patch.object(Runner, "run", new=AsyncMock(side_effect=RuntimeError("timeout"))):
            with pytest.raises(RecognitionError):
                asyncio.run(OpenAITextRecognizer().recognize(b"img", ""))


class TestFactory:
    """Test provider selection from the environment."""

    def test_default_is_tesseract(self, monkeypatch) -> None:
        monkeypatch.delenv("TEXT_RECOGNIZER", raising=False)
        assert isinstance(get_text_recognizer(), TesseractTextRecognizer)

    def test_openai(self, monkeypatch) -> None:
        monkeypatch.setenv("TEXT_RECOGNIZER", "openai")
        monkeypatch.setenv("OPENAI_OCR_MODEL", "gpt-4o-mini")
        recognizer = get_text_recognizer()
        assert isinstance(recognizer, OpenAITextRecognizer)
        assert recognizer.agent.model == "gpt-4o-mini"

    def test_unknown_provider(self, monkeypatch) -> None:
        monkeypatch.setenv("TEXT_RECOGNIZER", "bogus")
        with pytest.raises(ValueError, match="Unknown text recognizer"):
            get_text_recognizer()

    def test_parser_config(self, monkeypatch) -> None:
        monkeypatch.setenv("CURRENCY_SYMBOL", "€")
        assert get_parser_config() == ParserConfig(currency_symbol="€")
