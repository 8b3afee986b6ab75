from __future__ import annotations

import pytest

from idreview.models import VerificationRequest


@pytest.fixture
def anna_request() -> VerificationRequest:
    return VerificationRequest(
        id="user-anna",
        first_name="Anna",
        last_name="Verdi",
        birth_date="1995-03-12T00:00:00Z",
        city="Roma",
        document_front_url="https://storage.example.com/verifications/user-anna/document_front.jpg",
        selfie_url="https://storage.example.com/verifications/user-anna/selfie.jpg",
    )


@pytest.fixture
def settings(tmp_path) -> dict:
    return {
        "MONGO_URI": "",
        "MONGO_DB": "mate",
        "UPLOAD_ROOT": str(tmp_path / "uploads"),
        "OCR_LANGUAGES": ("it", "en"),
        "OCR_RECOGNIZER": "easyocr",
        "OCR_GPU": False,
        "FETCH_TIMEOUT": 5.0,
        "LOG_LEVEL": "WARNING",
    }
