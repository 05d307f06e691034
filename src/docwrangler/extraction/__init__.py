"""Document text acquisition."""

from .acquisition import TextAcquisition
from .models import AcquiredText, PrimaryText
from .primary import PrimaryExtractor, PypdfExtractor
from .recognition import PageRenderer, PyMuPDFRenderer, Recognizer, TesseractRecognizer

__all__ = [
    "TextAcquisition",
    "AcquiredText",
    "PrimaryText",
    "PrimaryExtractor",
    "PypdfExtractor",
    "PageRenderer",
    "PyMuPDFRenderer",
    "Recognizer",
    "TesseractRecognizer",
]
