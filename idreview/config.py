# idreview/config.py
import os

from dotenv import load_dotenv


def _split_languages(value):
    return tuple(part.strip() for part in value.split(",") if part.strip())


def load_settings() -> dict:
    load_dotenv()
    return {
        "MONGO_URI": os.getenv("IDREVIEW_MONGO_URI", ""),
        "MONGO_DB": os.getenv("IDREVIEW_MONGO_DB", "mate"),
        "UPLOAD_ROOT": os.getenv("IDREVIEW_UPLOAD_ROOT", "uploads"),
        "OCR_LANGUAGES": _split_languages(os.getenv("IDREVIEW_OCR_LANGUAGES", "it,en")) or ("it", "en"),
        "OCR_RECOGNIZER": os.getenv("IDREVIEW_OCR_RECOGNIZER", "easyocr"),
        "OCR_GPU": os.getenv("IDREVIEW_OCR_GPU", "").lower() in ("1", "true", "yes"),
        "FETCH_TIMEOUT": float(os.getenv("IDREVIEW_FETCH_TIMEOUT", "20") or 20),
        "LOG_LEVEL": os.getenv("IDREVIEW_LOG_LEVEL", "INFO").upper(),
    }
