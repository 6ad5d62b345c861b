import base64

from agents import Agent, Runner
from pydantic import BaseModel

from receipt_scanner.receipt.base import NoTextRecognized, RecognitionError

INSTRUCTIONS = """\
You are an OCR engine. Given a photo of an invoice or receipt, transcribe every piece of visible text.

Rules:
- lines: one entry per printed line, in top-to-bottom reading order
- copy text verbatim, including prices, currency symbols, labels and punctuation
- do NOT correct, total, reformat or translate anything
- do NOT add lines that are not printed on the document
- return an empty list if the image contains no readable text"""


class RecognizedText(BaseModel):
    lines: list[str]


class OpenAITextRecognizer:
    """Text recognition using OpenAI Agents SDK with a vision model."""

    def __init__(self, model: str = "gpt-4o"):
        self.agent = Agent(
            name="Invoice OCR",
            instructions=INSTRUCTIONS,
            model=model,
            output_type=RecognizedText,
        )

    async def recognize(self, image_bytes: bytes, content_type: str) -> list[str]:
        b64_image = base64.b64encode(image_bytes).decode("utf-8")
        media_type = content_type or "image/jpeg"

        try:
            result = await Runner.run(
                self.agent,
                input=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "input_text", "text": "Transcribe the text on this invoice."},
                            {"type": "input_image", "image_url": f"data:{media_type};base64,{b64_image}"},
                        ],
                    }
                ],
            )
        except Exception as e:
            raise RecognitionError(f"Vision OCR request failed: {e}") from e

        lines = [line for line in result.final_output.lines if line.strip()]
        if not lines:
            raise NoTextRecognized("No text found in image")
        return lines
