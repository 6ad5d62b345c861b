import asyncio
from io import BytesIO
import logging

from PIL import Image, ImageEnhance, ImageFilter
import pytesseract

from receipt_scanner.receipt.base import NoTextRecognized, RecognitionError, RecognizerUnavailable

logger = logging.getLogger(__name__)

# PSM 6 = assume a uniform block of text, which suits receipts
TESSERACT_CONFIG = r"--oem 3 --psm 6"
MAX_IMAGE_SIDE = 2000
MIN_IMAGE_SIDE = 1000


def preprocess_image(image_bytes: bytes) -> Image.Image:
    """Normalize a photo for OCR: RGB, bounded size, grayscale, contrast, sharpen.

    Raises:
        RecognitionError: If the bytes are not a readable image
    """
    try:
        img = Image.open(BytesIO(image_bytes))
        img.load()
    except Exception as e:
        raise RecognitionError(f"Unreadable image: {e}") from e

    if img.mode != "RGB":
        img = img.convert("RGB")

    longest = max(img.size)
    if longest > MAX_IMAGE_SIDE or longest < MIN_IMAGE_SIDE:
        target = MAX_IMAGE_SIDE if longest > MAX_IMAGE_SIDE else MIN_IMAGE_SIDE
        ratio = target / longest
        new_size = (max(1, int(img.size[0] * ratio)), max(1, int(img.size[1] * ratio)))
        logger.debug(f"Resizing image from {img.size} to {new_size}")
        img = img.resize(new_size, Image.Resampling.LANCZOS)

    img = img.convert("L")
    img = ImageEnhance.Contrast(img).enhance(1.5)
    return img.filter(ImageFilter.SHARPEN)


class TesseractTextRecognizer:
    """On-device text recognition with the Tesseract binary."""

    def __init__(self, tesseract_cmd: str | None = None):
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def _recognize_sync(self, image_bytes: bytes) -> str:
        image = preprocess_image(image_bytes)
        try:
            return pytesseract.image_to_string(image, config=TESSERACT_CONFIG)
        except pytesseract.TesseractNotFoundError as e:
            raise RecognizerUnavailable(
                "Tesseract OCR binary not found. Install tesseract-ocr or set TESSERACT_CMD."
            ) from e
        except pytesseract.TesseractError as e:
            raise RecognitionError(f"Tesseract OCR failed: {e}") from e

    async def recognize(self, image_bytes: bytes, content_type: str) -> list[str]:
        text = await asyncio.to_thread(self._recognize_sync, image_bytes)
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        if not lines:
            raise NoTextRecognized("No text found in image")
        logger.debug(f"Tesseract recognized {len(lines)} lines")
        return lines
