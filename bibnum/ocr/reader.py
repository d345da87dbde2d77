"""OCR collaborator built on pytesseract, plus acceptance of recognized digits.

The recognizer reads one rectified chain patch as a single word with
tesseract's dictionaries disabled, so digit runs are not corrected towards
dictionary words. A result counts only if it is a run of decimal digits with
exactly one digit per chain component.
"""

from __future__ import annotations

import logging
import string
from typing import Callable, List, Optional, Sequence

import numpy as np
import pytesseract

logger = logging.getLogger(__name__)

PSM_SINGLE_WORD = 8

DICTIONARY_PARAMS = (
    "load_system_dawg",
    "load_freq_dawg",
    "load_punc_dawg",
    "load_number_dawg",
    "load_unambig_dawg",
    "load_bigram_dawg",
)

Recognizer = Callable[[np.ndarray], str]
"""Anything that turns a single-channel uint8 patch into text."""


def build_tesseract_config(
    psm: int = PSM_SINGLE_WORD,
    disable_dictionaries: bool = True,
    whitelist: Optional[str] = None,
) -> str:
    """Compose a tesseract command-line config string.

    Doxygen:
    - @param psm: Page segmentation mode (8 = single word).
    - @param disable_dictionaries: Turn off every dictionary DAWG.
    - @param whitelist: Optional character whitelist, e.g. '0123456789'.
    - @return: Config string for `pytesseract.image_to_string`.
    """
    parts = [f"--psm {int(psm)}"]
    if disable_dictionaries:
        parts.extend(f"-c {name}=0" for name in DICTIONARY_PARAMS)
    if whitelist:
        parts.append(f"-c tessedit_char_whitelist={whitelist}")
    return " ".join(parts)


class TesseractRecognizer:
    """Callable OCR engine for rectified chain patches."""

    def __init__(self, lang: str = "eng", config: Optional[str] = None) -> None:
        self.lang = lang
        self.config = build_tesseract_config() if config is None else config

    def __call__(self, patch: np.ndarray) -> str:
        return pytesseract.image_to_string(patch, lang=self.lang, config=self.config)


def is_number(text: str) -> bool:
    """True for a non-empty string of ASCII decimal digits."""
    return bool(text) and all(ch in string.digits for ch in text)


def accept_text(text: Optional[str], expected_length: int) -> Optional[str]:
    """Validate OCR output for a chain of `expected_length` components.

    Doxygen:
    - @param text: Raw OCR output (may be None or empty).
    - @param expected_length: Number of distinct components in the chain.
    - @return: The trimmed digit string, or None if it is rejected.
    """
    trimmed = (text or "").strip()
    if not trimmed:
        return None
    if len(trimmed) != expected_length:
        logger.debug(
            "Text size mismatch: expected %d digits, got '%s' (%d digits)",
            expected_length, trimmed, len(trimmed),
        )
        return None
    if not is_number(trimmed):
        logger.debug("Text is not a number ('%s')", trimmed)
        return None
    return trimmed


def parse_numbers(texts: Sequence[str]) -> List[int]:
    """Convert accepted digit strings to a sorted list of unique integers."""
    return sorted({int(t) for t in texts})
