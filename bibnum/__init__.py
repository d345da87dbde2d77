"""Digit run detection with the Stroke Width Transform.

Packages:
- bibnum.swt: stroke width transform, components and chain building
- bibnum.image: edges/gradients and chain rectification
- bibnum.ocr: pytesseract recognizer and digit acceptance
- bibnum.pipeline: detector orchestration and batch processing
- bibnum.render: debug renderings
"""

__version__ = "0.1.0"
