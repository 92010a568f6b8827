"""
score_ocr.py

Result-screen reading for score identification.

Purpose
- Crop the known regions of an evaluation screen and turn recognized text into a ScreenReading
- One ScreenReading per screen layout (theme); callers match candidates against all of them

How it works
- Region rectangles are stored in 1920x1080 coordinates and scaled to the real image size
- Each region is read by one of two passes: a general text pass or a digits-only pass
- Every field is parsed independently; a field that fails to parse is left empty

Errors
- OcrEngineInitError: the OCR engine could not start. Hard error for the caller.
- OcrImageError: the screenshot could not be decoded. Recoverable; skip this screenshot.

The OCR engine itself is external. TesseractRecognizer adapts pytesseract to the
TextRecognizer protocol; tests use a fake recognizer.
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

import pytesseract
from PIL import Image, UnidentifiedImageError

from score_models import Difficulty, Judgements, Rate, ScreenReading

logger = logging.getLogger(__name__)

REFERENCE_WIDTH = 1920
REFERENCE_HEIGHT = 1080

# Full-screen screenshots; used when the image carries no resolution.
FALLBACK_DPI = 96


# -----------------------------
# Errors
# -----------------------------


class ScoreOcrError(Exception):
    pass


class OcrEngineInitError(ScoreOcrError):
    pass


class OcrImageError(ScoreOcrError):
    pass


# -----------------------------
# Field parsers
# -----------------------------


_USERNAME_PATTERN = re.compile(r"Logged in as\s+(.+?)\s*\(([^:()]*):\s*#([^)]*)\)")


def parse_text(text: str) -> Optional[str]:
    cleaned = (text or "").strip()
    return cleaned or None


def parse_float(text: str) -> Optional[float]:
    cleaned = (text or "").strip().rstrip("%").strip()
    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_rate(text: str) -> Optional[Rate]:
    cleaned = (text or "").strip().lower().rstrip("x").strip()
    value = parse_float(cleaned)
    if value is None:
        return None
    return Rate.from_float(value)


def parse_username(text: str) -> Optional[str]:
    match = _USERNAME_PATTERN.search(text or "")
    if match is None:
        return None
    return match.group(1).strip() or None


def parse_judgements(text: str) -> Optional[Judgements]:
    counts: List[int] = []
    for part in (text or "").split("/"):
        part = part.strip()
        if part.isdigit():
            counts.append(int(part))
    if len(counts) != 6:
        return None
    marvelous, perfect, great, good, bad, miss = counts
    return Judgements(marvelous=marvelous, perfect=perfect, great=great, good=good, bad=bad, miss=miss)


def parse_difficulty(text: str) -> Optional[Difficulty]:
    return Difficulty.from_short_string(text)


# -----------------------------
# Layouts
# -----------------------------


@dataclass(frozen=True)
class ScreenRegion:
    field_name: str
    # (x, y, width, height) in 1920x1080 coordinates
    box: Tuple[int, int, int, int]
    digits_only: bool
    parser: Callable[[str], object]

    def scaled_box(self, image_width: int, image_height: int) -> Tuple[int, int, int, int]:
        x, y, width, height = self.box
        left = x * image_width // REFERENCE_WIDTH
        top = y * image_height // REFERENCE_HEIGHT
        right = left + width * image_width // REFERENCE_WIDTH
        bottom = top + height * image_height // REFERENCE_HEIGHT
        return left, top, right, bottom


@dataclass(frozen=True)
class ScreenLayout:
    name: str
    regions: Tuple[ScreenRegion, ...]


DEFAULT_LAYOUT = ScreenLayout(
    name="til_death",
    regions=(
        ScreenRegion("rate", (914, 371, 98, 19), True, parse_rate),
        ScreenRegion("pack", (241, 18, 1677, 55), False, parse_text),
        ScreenRegion("username", (461, 1004, 1111, 40), False, parse_username),
        ScreenRegion("song", (760, 322, 406, 32), False, parse_text),
        ScreenRegion("artist", (747, 350, 417, 25), False, parse_text),
        ScreenRegion("wifescore", (53, 339, 128, 40), True, parse_float),
        ScreenRegion("msd", (33, 385, 209, 51), True, parse_float),
        ScreenRegion("ssr", (535, 385, 209, 51), True, parse_float),
        ScreenRegion("judgements", (1422, 171, 308, 21), True, parse_judgements),
        ScreenRegion("difficulty", (646, 324, 100, 56), False, parse_difficulty),
    ),
)

BUILTIN_LAYOUTS: Tuple[ScreenLayout, ...] = (DEFAULT_LAYOUT,)


# -----------------------------
# Recognizers
# -----------------------------


class TextRecognizer(Protocol):
    def recognize(self, image: Image.Image, *, digits_only: bool) -> str:
        raise NotImplementedError


class TesseractRecognizer:
    """pytesseract-backed recognizer with a text pass and a digits-only pass."""

    def __init__(
        self,
        *,
        tessdata_dir: Optional[Path] = None,
        tesseract_cmd: Optional[str] = None,
        text_language: str = "eng",
        digits_language: str = "digitsall_layer",
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = str(tesseract_cmd)

        try:
            version = pytesseract.get_tesseract_version()
        except pytesseract.TesseractNotFoundError as exception:
            raise OcrEngineInitError(f"Failed to initialize Tesseract: {exception}") from exception

        logger.info("Tesseract %s ready (text=%s, digits=%s)", version, text_language, digits_language)

        self._tessdata_dir = Path(tessdata_dir) if tessdata_dir is not None else None
        self._text_language = str(text_language)
        self._digits_language = str(digits_language)

    def _config(self) -> str:
        options = ["--psm 7", f"--dpi {FALLBACK_DPI}"]
        if self._tessdata_dir is not None:
            options.append(f'--tessdata-dir "{self._tessdata_dir}"')
        return " ".join(options)

    def recognize(self, image: Image.Image, *, digits_only: bool) -> str:
        language = self._digits_language if digits_only else self._text_language
        try:
            return str(pytesseract.image_to_string(image, lang=language, config=self._config()))
        except pytesseract.TesseractError as exception:
            logger.warning("Tesseract failed on a %s region: %s", "digits" if digits_only else "text", exception)
            return ""


# -----------------------------
# Reading
# -----------------------------


def open_image(image_bytes: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError) as exception:
        raise OcrImageError(f"Could not read the provided image: {exception}") from exception
    return image.convert("RGB")


def read_layout(image: Image.Image, recognizer: TextRecognizer, layout: ScreenLayout) -> ScreenReading:
    image_width, image_height = image.size
    values: Dict[str, object] = {}
    for region in layout.regions:
        crop = image.crop(region.scaled_box(image_width, image_height))
        text = recognizer.recognize(crop, digits_only=region.digits_only).strip()
        logger.debug("[%s] %s: %r", layout.name, region.field_name, text)
        values[region.field_name] = region.parser(text)
    return ScreenReading(**values)


def read_screen(
    image_bytes: bytes,
    recognizer: TextRecognizer,
    layouts: Sequence[ScreenLayout] = BUILTIN_LAYOUTS,
) -> List[ScreenReading]:
    image = open_image(image_bytes)
    readings = [read_layout(image, recognizer, layout) for layout in layouts]
    logger.info("Read %d layout(s) from a %dx%d screenshot", len(readings), image.size[0], image.size[1])
    return readings


class ScreenReader:
    """Binds a recognizer and layouts into the reader interface used by score_identifier.py."""

    def __init__(self, recognizer: TextRecognizer, layouts: Sequence[ScreenLayout] = BUILTIN_LAYOUTS) -> None:
        self._recognizer = recognizer
        self._layouts = tuple(layouts)

    def read(self, image_bytes: bytes) -> List[ScreenReading]:
        return read_screen(image_bytes, self._recognizer, self._layouts)


def _run_unit_tests() -> None:
    assert parse_rate("1.15") == Rate(x20=23)
    assert parse_rate("0.95x") == Rate(x20=19)
    assert parse_rate("abc") is None
    assert parse_username("Logged in as kangalioo (24.50: #123)") == "kangalioo"
    assert parse_username("garbage") is None
    assert parse_judgements("1000 / 200 / 30 / 4 / 5 / 6") == Judgements(1000, 200, 30, 4, 5, 6)
    assert parse_judgements("1000 / 200 / 30") is None
    assert parse_difficulty("IN") is Difficulty.CHALLENGE
    assert parse_float(" 93.12% ") == 93.12
    assert parse_text("   ") is None

    assert DEFAULT_LAYOUT.regions[0].scaled_box(960, 540) == (457, 185, 506, 194)


if __name__ == "__main__":
    _run_unit_tests()
    print("score_ocr.py: ok")
