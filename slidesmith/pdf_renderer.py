# slidesmith/pdf_renderer.py
"""
Rasterize slides onto a fixed 1280x720 canvas with Pillow and bundle the
pages into a PDF, one slide per page in deck order.
"""
import logging
import os
import re
from functools import lru_cache
from io import BytesIO
from typing import List, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from .config import CANVAS_HEIGHT, CANVAS_WIDTH, FONT_CANDIDATES, FONT_PATH
from .layouts import split_columns, subtitle_of
from .media import load_image
from .schemas import Presentation, Slide, SlideLayout, TemplateStyles

PADDING = 64
GAP = 32
TITLE_SIZE = 60
HEADING_SIZE = 48
SUBTITLE_SIZE = 32
TEXT_SIZE = 28
BULLET_INDENT = 32
LINE_SPACING = 1.3

logger = logging.getLogger(__name__)

Box = Tuple[int, int, int, int]  # x, y, width, height


def find_font_path() -> Optional[str]:
    """First existing font: SLIDESMITH_FONT, then the platform candidates."""
    candidates = ([FONT_PATH] if FONT_PATH else []) + FONT_CANDIDATES
    for path in candidates:
        if os.path.isfile(path):
            return path
    return None


@lru_cache(maxsize=32)
def _truetype(path: str, size: int):
    return ImageFont.truetype(path, size)


def _font(size: int):
    path = find_font_path()
    if path:
        try:
            return _truetype(path, size)
        except OSError as e:
            logger.warning("Cannot load font %s: %s", path, e)
    # bundled font has no CJK glyphs
    return ImageFont.load_default(size=size)


def _fit(draw: ImageDraw.ImageDraw, word: str, font, max_width: float) -> int:
    n = 1
    while n < len(word) and draw.textlength(word[: n + 1], font=font) <= max_width:
        n += 1
    return n


def wrap_text(draw: ImageDraw.ImageDraw, text: str, font, max_width: float) -> List[str]:
    """Greedy word wrap; words wider than the box (or unspaced scripts) are hard-broken."""
    lines: List[str] = []
    for paragraph in (text or "").splitlines() or [""]:
        line = ""
        for word in re.findall(r"\S+\s*", paragraph):
            if draw.textlength(line + word.rstrip(), font=font) <= max_width:
                line += word
                continue
            if line:
                lines.append(line.rstrip())
                line = ""
            while draw.textlength(word.rstrip(), font=font) > max_width:
                cut = _fit(draw, word, font, max_width)
                lines.append(word[:cut])
                word = word[cut:]
            line = word
        lines.append(line.rstrip())
    return lines


def _line_height(size: int) -> int:
    return int(size * LINE_SPACING)


def _draw_lines(draw, lines: List[str], size: int, x: int, y: int, width: int,
                fill: str, center: bool = False) -> int:
    font = _font(size)
    for line in lines:
        if y + size > CANVAS_HEIGHT - PADDING // 2:
            break
        lx = x + (width - draw.textlength(line, font=font)) / 2 if center else x
        draw.text((lx, y), line, font=font, fill=fill)
        y += _line_height(size)
    return y


def _draw_bullets(draw, bullets: List[str], box: Box, fill: str) -> None:
    x, y, w, _ = box
    font = _font(TEXT_SIZE)
    for bullet in bullets:
        lines = wrap_text(draw, bullet, font, w - BULLET_INDENT)
        if y + TEXT_SIZE > CANVAS_HEIGHT - PADDING // 2:
            break
        draw.text((x, y), "•", font=font, fill=fill)
        y = _draw_lines(draw, lines, TEXT_SIZE, x + BULLET_INDENT, y, w - BULLET_INDENT, fill)
        y += TEXT_SIZE // 2


def _draw_centered_block(draw, slide: Slide, styles: TemplateStyles, box: Box,
                         title_size: int, subtitle_size: int, accent: bool) -> None:
    x, _, w, _ = box
    title_lines = wrap_text(draw, slide.title, _font(title_size), w)
    subtitle = subtitle_of(slide.layout, slide.content)
    subtitle_lines = wrap_text(draw, subtitle, _font(subtitle_size), w) if subtitle else []

    height = len(title_lines) * _line_height(title_size)
    if accent:
        height += 24
    if subtitle_lines:
        height += 16 + len(subtitle_lines) * _line_height(subtitle_size)

    y = max(PADDING, (CANVAS_HEIGHT - height) // 2)
    y = _draw_lines(draw, title_lines, title_size, x, y, w, styles.title, center=True)
    if accent:
        bar_w = w // 4
        draw.rectangle((x + (w - bar_w) // 2, y + 10, x + (w + bar_w) // 2, y + 14), fill=styles.accent)
        y += 24
    if subtitle_lines:
        _draw_lines(draw, subtitle_lines, subtitle_size, x, y + 16, w, styles.subtitle, center=True)


def _draw_heading(draw, slide: Slide, styles: TemplateStyles, box: Box) -> int:
    x, y, w, _ = box
    lines = wrap_text(draw, slide.title, _font(HEADING_SIZE), w)
    return _draw_lines(draw, lines, HEADING_SIZE, x, y, w, styles.title) + GAP


def render_slide(slide: Slide, styles: TemplateStyles) -> Image.Image:
    page = Image.new("RGB", (CANVAS_WIDTH, CANVAS_HEIGHT), styles.background)
    draw = ImageDraw.Draw(page)

    inner_w = CANVAS_WIDTH - 2 * PADDING
    inner_h = CANVAS_HEIGHT - 2 * PADDING
    photo = load_image(slide.image_url)
    if photo is not None:
        text_w = (inner_w - GAP) * 2 // 3
        image_box = (PADDING + text_w + GAP, PADDING, inner_w - text_w - GAP, inner_h)
        _paste_fitted(page, photo, image_box)
    else:
        text_w = inner_w
    box: Box = (PADDING, PADDING, text_w, inner_h)

    if slide.layout == SlideLayout.TITLE_SLIDE:
        _draw_centered_block(draw, slide, styles, box, TITLE_SIZE, SUBTITLE_SIZE, accent=False)
    elif slide.layout == SlideLayout.SECTION_HEADER:
        _draw_centered_block(draw, slide, styles, box, HEADING_SIZE, SUBTITLE_SIZE - 4, accent=True)
    elif slide.layout == SlideLayout.BLANK:
        if slide.title:
            lines = wrap_text(draw, slide.title, _font(SUBTITLE_SIZE), text_w)
            y = (CANVAS_HEIGHT - len(lines) * _line_height(SUBTITLE_SIZE)) // 2
            _draw_lines(draw, lines, SUBTITLE_SIZE, PADDING, y, text_w, styles.subtitle, center=True)
    elif slide.layout == SlideLayout.TWO_COLUMN:
        y = _draw_heading(draw, slide, styles, box)
        left, right = split_columns(slide.content)
        col_w = (text_w - GAP) // 2
        _draw_bullets(draw, left, (PADDING, y, col_w, inner_h), styles.text)
        _draw_bullets(draw, right, (PADDING + col_w + GAP, y, col_w, inner_h), styles.text)
    else:
        y = _draw_heading(draw, slide, styles, box)
        _draw_bullets(draw, list(slide.content), (PADDING, y, text_w, inner_h), styles.text)
    return page


def _paste_fitted(page: Image.Image, photo: Image.Image, box: Box) -> None:
    x, y, w, h = box
    fitted = photo.copy()
    fitted.thumbnail((w, h))
    page.paste(fitted, (x + (w - fitted.width) // 2, y + (h - fitted.height) // 2))


def build_pdf(presentation: Presentation) -> bytes:
    styles = presentation.template.styles
    pages = [render_slide(s, styles) for s in presentation.slides]
    bio = BytesIO()
    # 72 dpi keeps each page at 1280x720 points
    pages[0].save(bio, format="PDF", save_all=True, append_images=pages[1:], resolution=72.0)
    return bio.getvalue()
