"""High-level pipeline orchestration for Edges → SWT → Chains → OCR."""

from .process import (
    ChainDetection,
    TextDetector,
    accept_chain,
    detect_text,
    find_chains,
    print_progress_bar,
    process_image,
)

__all__ = [
    "ChainDetection",
    "TextDetector",
    "accept_chain",
    "detect_text",
    "find_chains",
    "print_progress_bar",
    "process_image",
]
