"""OCR (Optical Character Recognition) collaborator.

Wraps pytesseract for single-word recognition of rectified chain patches and
validates the returned text as a digit run.
"""

from .reader import (
    Recognizer,
    TesseractRecognizer,
    accept_text,
    build_tesseract_config,
    is_number,
    parse_numbers,
)

__all__ = [
    "Recognizer",
    "TesseractRecognizer",
    "accept_text",
    "build_tesseract_config",
    "is_number",
    "parse_numbers",
]
