import base64
import logging
import os
import subprocess
from typing import Optional

import requests
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

PDFTOTEXT_BIN = os.getenv("PDFTOTEXT_BIN", "pdftotext")
PDFTOTEXT_TIMEOUT = float(os.getenv("PDFTOTEXT_TIMEOUT", "30"))
VISION_TIMEOUT = float(os.getenv("VISION_TIMEOUT", "15"))
GOOGLE_VISION_URL = "https://vision.googleapis.com/v1/images:annotate"

SOURCE_PDF = "pdf"
SOURCE_IMAGE = "image"


class TextExtractionError(Exception):
    pass


def extract_text(path: str, source_type: str) -> str:
    if source_type == SOURCE_PDF:
        return extract_text_from_pdf(path)
    if source_type == SOURCE_IMAGE:
        return extract_text_from_image(path)
    raise TextExtractionError(f"Unsupported source type: {source_type}")


def extract_text_from_pdf(path: str) -> str:
    if not os.path.exists(path):
        raise TextExtractionError("PDF file not found.")

    command = [PDFTOTEXT_BIN, "-layout", "-enc", "UTF-8", "-nopgbrk", path, "-"]
    try:
        result = subprocess.run(command, capture_output=True, text=True, timeout=PDFTOTEXT_TIMEOUT)
    except FileNotFoundError:
        raise TextExtractionError("pdftotext is not installed.")
    except subprocess.TimeoutExpired:
        raise TextExtractionError(f"pdftotext timed out after {PDFTOTEXT_TIMEOUT:g}s.")

    if result.returncode != 0:
        raise TextExtractionError(f"pdftotext failed: {result.stderr.strip()[:200]}")

    text = result.stdout.strip()
    logger.info("Extracted %d characters from PDF %s", len(text), path)
    return text


def extract_text_from_image(path: str, api_key: Optional[str] = None) -> str:
    api_key = api_key or os.getenv("GOOGLE_VISION_API_KEY")
    if not api_key:
        raise TextExtractionError("Google Vision API key not configured.")
    if not os.path.exists(path):
        raise TextExtractionError("Image file not found.")

    with open(path, "rb") as image_file:
        image_data = base64.b64encode(image_file.read()).decode("ascii")

    payload = {
        "requests": [
            {
                "image": {"content": image_data},
                "features": [{"type": "TEXT_DETECTION"}],
            }
        ]
    }

    try:
        response = requests.post(
            GOOGLE_VISION_URL,
            params={"key": api_key},
            json=payload,
            timeout=VISION_TIMEOUT,
        )
    except requests.RequestException as e:
        raise TextExtractionError(f"Google Vision API request failed: {e}")

    if response.status_code != 200:
        raise TextExtractionError(f"Google Vision API error: {response.text[:200]}")

    try:
        body = response.json()
    except ValueError:
        raise TextExtractionError(f"Google Vision API returned invalid JSON: {response.text[:200]}")

    responses = body.get("responses") or [{}]
    error = responses[0].get("error")
    if error:
        raise TextExtractionError(f"Google Vision API error: {error.get('message', error)}")

    annotations = responses[0].get("textAnnotations") or [{}]
    text = annotations[0].get("description", "").strip()
    logger.info("Extracted %d characters from image %s", len(text), path)
    return text
