"""Identity-verification review backend: OCR matching and operator decisions."""

__version__ = "0.1.0"
