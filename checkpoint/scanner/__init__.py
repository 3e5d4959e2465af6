"""
==============================================================================
Scanner Package - Badge Capture Primitives
==============================================================================

Camera access, barcode decoding and text recognition for badge capture.

Classes:
--------
- CameraSource / OpenCVCamera: Device enumeration and frame capture
- BarcodeDecoder: pyzbar decoding of badge barcodes and QR codes
- RegionMapper: Badge region to native pixel rectangle
- FramePreprocessor: Crop, upscale, binarize and sharpen for OCR
- TextRecognizer / TesseractRecognizer: Recognition engine handle
- CandidateExtractor: Badge number extraction from raw text

==============================================================================
"""

from .models import (
    BADGE_REGION,
    CandidateExtractionResult,
    CaptureFrame,
    MappedRegion,
    RecognitionRegion,
    ScanLifecycleState,
    SourceChannel,
)
from .region import RegionMapper
from .preprocess import FramePreprocessor
from .extractor import CandidateExtractor
from .barcode import BarcodeDecoder
from .camera import CameraInfo, CameraSource, OpenCVCamera
from .recognizer import TesseractRecognizer, TextRecognizer

__all__ = [
    "BADGE_REGION",
    "CandidateExtractionResult",
    "CaptureFrame",
    "MappedRegion",
    "RecognitionRegion",
    "ScanLifecycleState",
    "SourceChannel",
    "RegionMapper",
    "FramePreprocessor",
    "CandidateExtractor",
    "BarcodeDecoder",
    "CameraInfo",
    "CameraSource",
    "OpenCVCamera",
    "TesseractRecognizer",
    "TextRecognizer",
]
