#!/usr/bin/env python3
"""
Islamic Condolence Card Generator
Renders a 600x800 memorial card (photo in a circular frame, name, dates and a
word-wrapped message on black) to PNG, with an optional printable PDF and
saving to the configured record store.
"""

from __future__ import annotations

import os
import sys
from io import BytesIO
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from config import (
    ARABIC_FONT_SIZE,
    ARABIC_TEXT,
    ARABIC_Y,
    BACKGROUND_COLOR,
    CARD_CENTER_X,
    CARD_HEIGHT,
    CARD_WIDTH,
    CLOSING_FONT_SIZE,
    CLOSING_GAP_PX,
    CLOSING_TEXT,
    DATES_FONT_SIZE,
    DATES_Y,
    INFO_FONT_SIZE,
    INFO_Y,
    MESSAGE_FONT_SIZE,
    MESSAGE_LINE_HEIGHT,
    MESSAGE_MARGIN_PX,
    MESSAGE_Y,
    MIN_PNG_BYTES,
    NAME_FONT_SIZE,
    NAME_Y,
    PDF_PX_TO_PT,
    PHOTO_BORDER_WIDTH,
    PHOTO_CENTER,
    PHOTO_COVER_FACTOR,
    PHOTO_RADIUS,
    RULE_MARGIN_X,
    RULE_WIDTH,
    RULE_Y,
    TEXT_COLOR,
    TITLE_FONT_SIZE,
    TITLE_TEXT,
    TITLE_Y,
)
from models import FormInput
from utils import safe_pdf_filename, safe_png_filename

_APP_DIR = Path(__file__).resolve().parent
_FONT_DIR = _APP_DIR / "fonts"

RENDER_ERROR_REASONS = ("missing-input", "decode-failure", "draw-failure")

# Font candidates per role: bundled fonts first, then Linux, macOS, Windows.
FONT_CANDIDATES: Dict[str, List[str]] = {
    "bold": [
        str(_FONT_DIR / "DejaVuSans-Bold.ttf"),
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
        "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
        "/Library/Fonts/Arial Bold.ttf",
        "C:/Windows/Fonts/arialbd.ttf",
    ],
    "regular": [
        str(_FONT_DIR / "DejaVuSans.ttf"),
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        "/System/Library/Fonts/Supplemental/Arial.ttf",
        "/Library/Fonts/Arial.ttf",
        "C:/Windows/Fonts/arial.ttf",
    ],
    "serif_italic": [
        str(_FONT_DIR / "DejaVuSerif-Italic.ttf"),
        "/usr/share/fonts/truetype/dejavu/DejaVuSerif-Italic.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSerif-Italic.ttf",
        "/System/Library/Fonts/Supplemental/Georgia Italic.ttf",
        "/Library/Fonts/Georgia Italic.ttf",
        "C:/Windows/Fonts/georgiai.ttf",
    ],
}


def _log(msg: str) -> None:
    print(f"[render] {msg}", flush=True)


class RenderError(RuntimeError):
    """Card could not be rendered; `reason` is one of RENDER_ERROR_REASONS."""

    def __init__(self, reason: str, message: str = ""):
        if reason not in RENDER_ERROR_REASONS:
            raise ValueError(f"Unknown render error reason: {reason!r}")
        super().__init__(message or reason)
        self.reason = reason


def decode_source_image(data: bytes) -> "Image.Image":
    """
    Decode uploaded photo bytes into an RGB (or RGBA, if transparent) image.
    EXIF orientation is applied, as browsers do when drawing an <img>.
    """
    from PIL import Image, ImageOps

    if not data:
        raise RenderError("missing-input", "No photo uploaded")
    try:
        img = Image.open(BytesIO(data))
        img.load()
        img = ImageOps.exif_transpose(img)
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
        raise RenderError("decode-failure", f"Error loading image: {e}") from e
    if img.width <= 0 or img.height <= 0:
        raise RenderError("decode-failure", f"Image has no pixels ({img.width}x{img.height})")

    has_alpha = img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info)
    if img.mode == "I" or img.mode.startswith("I;16"):
        # 16-bit samples; convert("RGB") would clip them instead of scaling
        img = img.convert("I").point(lambda v: v * (1 / 256)).convert("L")
    elif img.mode == "F":
        _, hi = img.getextrema()
        scale = 255 if hi <= 1.0 else 1 / 256
        img = img.point(lambda v: v * scale).convert("L")
    return img.convert("RGBA" if has_alpha else "RGB")


def cover_fit_size(
    width: float,
    height: float,
    radius: float = PHOTO_RADIUS,
    factor: float = PHOTO_COVER_FACTOR,
) -> Tuple[float, float]:
    """
    Scaled (width, height) so the photo covers the circle, never letterboxed:
    start from width = radius * factor, switch to height if that is too short.
    """
    if width <= 0 or height <= 0:
        raise RenderError("decode-failure", f"Invalid photo size {width}x{height}")
    target = radius * factor
    aspect_ratio = width / height
    draw_width = target
    draw_height = draw_width / aspect_ratio
    if draw_height < target:
        draw_height = target
        draw_width = draw_height * aspect_ratio
    return draw_width, draw_height


def wrap_text(text: str, max_width: float, measure: Callable[[str], float]) -> List[str]:
    """
    Greedy word wrap using measured widths. A candidate line is measured with
    its trailing space; lines are returned without it.
    A word wider than max_width is kept whole on its own line.
    """
    lines: List[str] = []
    line = ""
    for word in (text or "").split():
        candidate = f"{line} {word}" if line else word
        if line and measure(candidate + " ") > max_width:
            lines.append(line)
            line = word
        else:
            line = candidate
    if line:
        lines.append(line)
    return lines


def format_card_date(d) -> str:
    """en-US short date, e.g. 3/15/2024."""
    return f"{d.month}/{d.day}/{d.year}"


def info_lines(form: FormInput) -> List[Tuple[str, str, int, int]]:
    """
    Name and optional detail lines as (text, font role, size, baseline y).
    Baselines are fixed, so omitted lines never move the others.
    """
    lines = [(form.full_name.upper(), "bold", NAME_FONT_SIZE, NAME_Y)]
    if form.date_of_birth and form.date_of_death:
        dates = f"{format_card_date(form.date_of_birth)} - {format_card_date(form.date_of_death)}"
        lines.append((dates, "regular", DATES_FONT_SIZE, DATES_Y))

    parts = []
    if form.age is not None:
        parts.append(f"Age {form.age} years")
    if form.place_of_death:
        parts.append(form.place_of_death)
    if parts:
        lines.append((" • ".join(parts), "regular", INFO_FONT_SIZE, INFO_Y))
    return lines


def message_baselines(line_count: int) -> Tuple[List[int], int]:
    """Baselines for wrapped message lines, and the closing phrase baseline."""
    ys = [MESSAGE_Y + i * MESSAGE_LINE_HEIGHT for i in range(line_count)]
    last = ys[-1] if ys else MESSAGE_Y
    return ys, last + CLOSING_GAP_PX


class CondolenceCardRenderer:
    """Renders condolence cards; fonts are loaded once per renderer."""

    def __init__(self, font_candidates: Optional[Dict[str, List[str]]] = None):
        self.font_candidates = font_candidates or FONT_CANDIDATES
        self._fonts: Dict[Tuple[str, int], Any] = {}

    def get_font(self, role: str, size: int):
        """Load and cache a font for a role ('bold', 'regular', 'serif_italic')."""
        from PIL import ImageFont

        key = (role, size)
        if key in self._fonts:
            return self._fonts[key]

        font = None
        for path in self.font_candidates.get(role, []):
            if not os.path.exists(path):
                continue
            try:
                font = ImageFont.truetype(path, size)
                break
            except OSError as e:
                _log(f"could not load font {path}: {e}")
        if font is None:
            # Pillow's bundled scalable font
            font = ImageFont.load_default(size=size)
        self._fonts[key] = font
        return font

    def _draw_centered(self, draw, text: str, role: str, size: int, y: int) -> None:
        font = self.get_font(role, size)
        draw.text((CARD_CENTER_X, y), text, font=font, fill=TEXT_COLOR, anchor="ms")

    def _paste_circular_photo(self, card, photo) -> None:
        from PIL import Image, ImageChops, ImageDraw

        cx, cy = PHOTO_CENTER
        r = PHOTO_RADIUS
        draw_w, draw_h = cover_fit_size(photo.width, photo.height)
        sx = draw_w / photo.width
        sy = draw_h / photo.height

        # Only the part of the cover-fit photo under the circle is resampled
        side = 2 * r + 1
        left = (draw_w / 2 - r) / sx
        top = (draw_h / 2 - r) / sy
        box = (
            max(0.0, left),
            max(0.0, top),
            min(float(photo.width), left + side / sx),
            min(float(photo.height), top + side / sy),
        )
        clipped = photo.resize((side, side), Image.Resampling.LANCZOS, box=box)

        mask = Image.new("L", (side, side), 0)
        ImageDraw.Draw(mask).ellipse([0, 0, 2 * r, 2 * r], fill=255)
        if clipped.mode == "RGBA":
            mask = ImageChops.multiply(mask, clipped.getchannel("A"))
            clipped = clipped.convert("RGB")
        card.paste(clipped, (cx - r, cy - r), mask)

    def render_card(self, photo_bytes: bytes, form: FormInput) -> "Image.Image":
        """
        Compose the card image.

        Args:
            photo_bytes: Uploaded photo (any Pillow-readable format)
            form: Personal details; full_name is required

        Returns:
            600x800 RGB card image
        """
        if not photo_bytes or form is None or not (form.full_name or "").strip():
            raise RenderError("missing-input", "Please upload an image and enter full name")

        photo = decode_source_image(photo_bytes)

        from PIL import Image, ImageDraw

        try:
            card = Image.new("RGB", (CARD_WIDTH, CARD_HEIGHT), BACKGROUND_COLOR)
            draw = ImageDraw.Draw(card)

            # === HEADER ===
            self._draw_centered(draw, TITLE_TEXT, "bold", TITLE_FONT_SIZE, TITLE_Y)
            self._draw_centered(draw, ARABIC_TEXT, "regular", ARABIC_FONT_SIZE, ARABIC_Y)

            # === PHOTO CIRCLE ===
            self._paste_circular_photo(card, photo)
            cx, cy = PHOTO_CENTER
            # Pillow strokes inward from the box; grow it so the stroke straddles the clip edge
            r = PHOTO_RADIUS + PHOTO_BORDER_WIDTH // 2
            draw.ellipse([cx - r, cy - r, cx + r, cy + r], outline=TEXT_COLOR, width=PHOTO_BORDER_WIDTH)

            # === NAME, DATES, AGE/PLACE ===
            for text, role, size, y in info_lines(form):
                self._draw_centered(draw, text, role, size, y)

            draw.line(
                [(RULE_MARGIN_X, RULE_Y), (CARD_WIDTH - RULE_MARGIN_X, RULE_Y)],
                fill=TEXT_COLOR,
                width=RULE_WIDTH,
            )

            # === MESSAGE ===
            font_message = self.get_font("regular", MESSAGE_FONT_SIZE)
            lines = wrap_text(
                form.custom_message,
                CARD_WIDTH - MESSAGE_MARGIN_PX,
                lambda s: draw.textlength(s, font=font_message),
            )
            ys, closing_y = message_baselines(len(lines))
            for line, y in zip(lines, ys):
                draw.text((CARD_CENTER_X, y), line, font=font_message, fill=TEXT_COLOR, anchor="ms")

            self._draw_centered(draw, CLOSING_TEXT, "serif_italic", CLOSING_FONT_SIZE, closing_y)
        except Exception as e:
            _log(f"error drawing card: {type(e).__name__}: {e}")
            raise RenderError("draw-failure", f"Error occurred while generating card: {e}") from e

        return card

    def encode_png(self, card_img: "Image.Image") -> bytes:
        """PNG bytes of a card; implausibly small output is rejected."""
        buf = BytesIO()
        try:
            card_img.save(buf, format="PNG")
        except (OSError, ValueError) as e:
            _log(f"error encoding PNG: {e}")
            raise RenderError("draw-failure", f"Error converting card to image: {e}") from e
        data = buf.getvalue()
        if len(data) < MIN_PNG_BYTES:
            _log(f"rejected PNG export of {len(data)} bytes")
            raise RenderError("draw-failure", "Invalid image data generated")
        _log(f"card generated, size: {round(len(data) / 1024)} KB")
        return data

    def render_png(self, photo_bytes: bytes, form: FormInput) -> bytes:
        return self.encode_png(self.render_card(photo_bytes, form))

    def create_pdf_bytes(self, card_img: "Image.Image") -> bytes:
        """
        Create a one-page printable PDF (bytes) from a card image.

        Args:
            card_img: Card image

        Returns:
            PDF bytes
        """
        from reportlab.lib.utils import ImageReader
        from reportlab.pdfgen import canvas

        width_pt = CARD_WIDTH * PDF_PX_TO_PT
        height_pt = CARD_HEIGHT * PDF_PX_TO_PT
        img = card_img.convert("RGB")
        buf = BytesIO()
        c = canvas.Canvas(buf, pagesize=(width_pt, height_pt))
        c.drawImage(ImageReader(img), 0, 0, width=width_pt, height=height_pt)
        c.showPage()
        c.save()
        return buf.getvalue()


_default_renderer: Optional[CondolenceCardRenderer] = None


def render_png(photo_bytes: bytes, form: FormInput) -> bytes:
    """Render a card with a shared renderer (fonts cached across calls)."""
    global _default_renderer
    if _default_renderer is None:
        _default_renderer = CondolenceCardRenderer()
    return _default_renderer.render_png(photo_bytes, form)


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Generate an Islamic condolence card (PNG)")
    parser.add_argument("photo", help="Path to the photo (JPG/PNG/...)")
    parser.add_argument("name", help="Full name of the deceased")
    parser.add_argument("--dob", default="", help="Date of birth (YYYY-MM-DD)")
    parser.add_argument("--dod", default="", help="Date of death (YYYY-MM-DD)")
    parser.add_argument("--age", default="", help="Age in years")
    parser.add_argument("--place", default="", help="Place of death")
    parser.add_argument("--message", default=None, help="Condolence message (default: standard blessing)")
    parser.add_argument("-o", "--output", default="output", help="Output directory (default: output)")
    parser.add_argument("--pdf", action="store_true", help="Also write a printable PDF")
    parser.add_argument("--save", action="store_true", help="Save photo, card and record to the configured store")

    args = parser.parse_args(argv)

    try:
        form = FormInput.from_form(
            args.name,
            date_of_birth=args.dob,
            date_of_death=args.dod,
            age=args.age,
            place_of_death=args.place,
            **({"custom_message": args.message} if args.message is not None else {}),
        )
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    photo_path = Path(args.photo)
    if not photo_path.exists():
        print(f"Error: Photo not found at {photo_path}")
        sys.exit(1)
    photo_bytes = photo_path.read_bytes()

    renderer = CondolenceCardRenderer()
    try:
        card_img = renderer.render_card(photo_bytes, form)
        png_bytes = renderer.encode_png(card_img)
    except RenderError as e:
        print(f"Error generating card ({e.reason}): {e}")
        sys.exit(1)

    output_dir = Path(args.output)
    output_dir.mkdir(exist_ok=True, parents=True)
    png_path = output_dir / safe_png_filename(form.full_name)
    png_path.write_bytes(png_bytes)
    print(f"Card written to {png_path}")
    if args.pdf:
        pdf_path = output_dir / safe_pdf_filename(form.full_name)
        pdf_path.write_bytes(renderer.create_pdf_bytes(card_img))
        print(f"PDF written to {pdf_path}")

    if args.save:
        from records import MissingConfigError, PersistenceError, StoreSettings, create_complete_record, make_record_store

        try:
            store = make_record_store(StoreSettings.from_env())
            record = create_complete_record(store, form, photo_bytes, png_bytes, photo_filename=photo_path.name)
        except (MissingConfigError, PersistenceError) as e:
            print(f"Error saving record: {e}")
            sys.exit(1)
        print(f"Saved record {record.id}: {record.condolence_image_url}")


if __name__ == '__main__':
    main()
