"""Pytest configuration and fixtures for the test suite."""

import os

# Set test environment variables before the app reads them at import
os.environ.update(
    {
        "RATELIMIT_ENABLED": "false",
        "TEXT_RECOGNIZER": "tesseract",
        "LOG_LEVEL": "WARNING",
    }
)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from receipt_scanner.main import app  # noqa: E402

RECEIPT_LINES = [
    "Corner Cafe",
    "Coffee 3.50",
    "Bagel 2.25",
    "Subtotal: $5.75",
    "Tax: $0.46",
    "Total: $6.21",
]


class FakeRecognizer:
    """Recognizer double returning fixed lines or raising a fixed error."""

    def __init__(self, lines=None, error=None):
        self.lines = lines or []
        self.error = error
        self.calls = []

    async def recognize(self, image_bytes: bytes, content_type: str) -> list[str]:
        self.calls.append((image_bytes, content_type))
        if self.error:
            raise self.error
        return self.lines


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def receipt_lines():
    return list(RECEIPT_LINES)


@pytest.fixture
def fake_recognizer(receipt_lines):
    return FakeRecognizer(lines=receipt_lines)
