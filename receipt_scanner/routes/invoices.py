import logging

from fastapi import APIRouter, File, HTTPException, Request, UploadFile

from receipt_scanner.ratelimit import SCAN_RATE_LIMIT, limiter
from receipt_scanner.receipt.base import NoTextRecognized
from receipt_scanner.receipt.factory import get_parser_config, get_text_recognizer
from receipt_scanner.receipt.price_parser import join_lines, parse
from receipt_scanner.schemas import ParseTextIn
from receipt_scanner.serializers import serialize_extraction

logger = logging.getLogger("receipt_scanner")
router = APIRouter()

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp"}


@router.post("/scan-invoice")
@limiter.limit(SCAN_RATE_LIMIT)
async def scan_invoice(request: Request, file: UploadFile = File(...)):
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="Unsupported image format. Use JPEG, PNG, or WebP.")

    image_bytes = await file.read()
    if len(image_bytes) == 0:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(image_bytes) > MAX_FILE_SIZE:
        raise HTTPException(status_code=400, detail="Image too large. Maximum size is 10 MB.")

    try:
        recognizer = get_text_recognizer()
        lines = await recognizer.recognize(image_bytes, file.content_type)
    except NoTextRecognized:
        logger.warning("No text recognized in uploaded image")
        raise HTTPException(status_code=422, detail="No text found in image")
    except ValueError as e:
        logger.error(f"Text recognition config error: {e}")
        raise HTTPException(status_code=503, detail="Text recognition is not available")
    except Exception as e:
        logger.error(f"Text recognition failed: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail="Failed to extract text from image")

    raw_text = join_lines(lines)
    result = parse(raw_text, get_parser_config())

    logger.info(
        "Invoice scanned",
        extra={"extra_data": {
            "lines_count": len(lines),
            "prices_count": len(result.all_prices),
            "items_count": len(result.item_prices),
            "has_total": result.total is not None,
        }},
    )

    return serialize_extraction(result, raw_text)


@router.post("/parse-text")
@limiter.limit(SCAN_RATE_LIMIT)
def parse_text(request: Request, data: ParseTextIn):
    raw_text = data.text if data.text is not None else join_lines(data.lines)
    result = parse(raw_text, get_parser_config())
    return serialize_extraction(result, raw_text)
