"""Deferred screenshot content extraction."""

from .html import PageText, html_to_text
from .image_utils import decode_base64_image, encode_image_to_base64, strip_data_url, to_logical_size
from .ocr import OCRToken, extract_ocr_tokens, tokens_to_text
from .pipeline import (
    ExtractionQueue,
    ExtractionResult,
    OperationStep,
    OperationStepRecorder,
    ocr_extractor,
)

__all__ = [
    "ExtractionQueue",
    "ExtractionResult",
    "OCRToken",
    "OperationStep",
    "OperationStepRecorder",
    "PageText",
    "decode_base64_image",
    "encode_image_to_base64",
    "extract_ocr_tokens",
    "html_to_text",
    "ocr_extractor",
    "strip_data_url",
    "to_logical_size",
    "tokens_to_text",
]
