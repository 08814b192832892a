from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from PIL import Image


@dataclass(slots=True)
class OCRToken:
    text: str
    bbox: tuple[int, int, int, int]
    confidence: float
    line_key: tuple[int, int, int] = (0, 0, 0)


def _normalize_conf(raw: Any) -> float:
    try:
        val = float(raw)
    except (TypeError, ValueError):
        return 0.0
    if val > 1:
        return max(0.0, min(1.0, val / 100.0))
    return max(0.0, min(1.0, val))


def _ensure_tesseract_cmd(pytesseract_module) -> None:
    if shutil.which("tesseract"):
        return
    for candidate in (
        Path(r"C:\Program Files\Tesseract-OCR\tesseract.exe"),
        Path(r"C:\Program Files (x86)\Tesseract-OCR\tesseract.exe"),
    ):
        if candidate.exists():
            pytesseract_module.pytesseract.tesseract_cmd = str(candidate)
            return


def extract_ocr_tokens(image: Image.Image, min_confidence: float = 0.0) -> list[OCRToken]:
    """Word tokens with boxes and their (block, paragraph, line) position.

    Returns an empty list when pytesseract or the tesseract binary is missing.
    """
    try:
        import pytesseract
    except ImportError:
        return []
    _ensure_tesseract_cmd(pytesseract)

    try:
        data = pytesseract.image_to_data(image, output_type=pytesseract.Output.DICT)
    except Exception as exc:
        # importable module, missing binary
        if exc.__class__.__name__ in {"TesseractNotFoundError", "TesseractError"}:
            return []
        raise

    tokens: list[OCRToken] = []
    for i, raw_text in enumerate(data.get("text", [])):
        text = (raw_text or "").strip()
        if not text:
            continue
        confidence = _normalize_conf(data["conf"][i])
        if confidence < min_confidence:
            continue
        left, top = int(data["left"][i]), int(data["top"][i])
        bbox = (left, top, left + int(data["width"][i]), top + int(data["height"][i]))
        line_key = (int(data["block_num"][i]), int(data["par_num"][i]), int(data["line_num"][i]))
        tokens.append(OCRToken(text=text, bbox=bbox, confidence=confidence, line_key=line_key))
    return tokens


def tokens_to_text(tokens: list[OCRToken]) -> str:
    """Join tokens into reading-order lines."""
    lines: dict[tuple[int, int, int], list[OCRToken]] = {}
    for token in tokens:
        lines.setdefault(token.line_key, []).append(token)
    out = []
    for key in sorted(lines):
        words = sorted(lines[key], key=lambda t: t.bbox[0])
        out.append(" ".join(w.text for w in words))
    return "\n".join(out)
