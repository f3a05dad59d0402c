# slidesmith/pptx_builder.py
from io import BytesIO
from typing import List, Optional

from pptx import Presentation as PptxPresentation
from pptx.dml.color import RGBColor
from pptx.enum.text import PP_ALIGN
from pptx.util import Inches, Pt

from .layouts import split_columns, subtitle_of
from .media import load_image
from .schemas import Presentation, Slide, SlideLayout, TemplateStyles

# 16:9, 10 x 5.625 inches
SLIDE_WIDTH_IN = 10.0
SLIDE_HEIGHT_IN = 5.625
BLANK_LAYOUT_INDEX = 6
BULLET = "•"

# right-hand image box, used when a slide carries a data: image
IMAGE_BOX = (6.75, 1.0, 2.75, 4.0)


def _rgb(hex_color: str) -> RGBColor:
    return RGBColor.from_string(hex_color.lstrip("#").upper())


def _style_runs(paragraph, size: int, color: str, bold: bool = False):
    for run in paragraph.runs:
        run.font.size = Pt(size)
        run.font.bold = bold
        run.font.color.rgb = _rgb(color)


def _add_text(slide, text: str, x: float, y: float, w: float, h: float,
              size: int, color: str, bold: bool = False, center: bool = False):
    box = slide.shapes.add_textbox(Inches(x), Inches(y), Inches(w), Inches(h))
    tf = box.text_frame
    tf.word_wrap = True
    p = tf.paragraphs[0]
    p.text = text
    if center:
        p.alignment = PP_ALIGN.CENTER
    _style_runs(p, size, color, bold)
    return box


def _add_bullets(slide, bullets: List[str], x: float, y: float, w: float, h: float,
                 size: int, color: str):
    box = slide.shapes.add_textbox(Inches(x), Inches(y), Inches(w), Inches(h))
    tf = box.text_frame
    tf.word_wrap = True
    tf.clear()
    if not bullets:
        return box

    # First bullet
    p = tf.paragraphs[0]
    p.level = 0
    p.text = f"{BULLET} {bullets[0]}"
    _style_runs(p, size, color)

    # Others
    for b in bullets[1:]:
        r = tf.add_paragraph()
        r.text = f"{BULLET} {b}"
        r.level = 0
        _style_runs(r, size, color)
    return box


def _insert_picture(slide, image_url: Optional[str]) -> bool:
    img = load_image(image_url)
    if img is None:
        return False
    x, y, w, h = IMAGE_BOX
    ratio = min(w / img.width, h / img.height)
    pic_w, pic_h = img.width * ratio, img.height * ratio
    buf = BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    slide.shapes.add_picture(
        buf,
        Inches(x + (w - pic_w) / 2),
        Inches(y + (h - pic_h) / 2),
        width=Inches(pic_w),
        height=Inches(pic_h),
    )
    return True


def _fill_slide(slide, s: Slide, styles: TemplateStyles, text_width: float):
    subtitle = subtitle_of(s.layout, s.content)

    if s.layout == SlideLayout.TITLE_SLIDE:
        _add_text(slide, s.title, 0.5, 2.0, text_width, 1, 44, styles.title, bold=True, center=True)
        if subtitle:
            _add_text(slide, subtitle, 0.5, 3.2, text_width, 1, 24, styles.subtitle, center=True)

    elif s.layout == SlideLayout.SECTION_HEADER:
        _add_text(slide, s.title, 0.5, 2.5, text_width, 1, 36, styles.title, bold=True, center=True)
        if subtitle:
            _add_text(slide, subtitle, 0.5, 3.5, text_width, 1, 20, styles.subtitle, center=True)

    elif s.layout == SlideLayout.TWO_COLUMN:
        _add_text(slide, s.title, 0.5, 0.2, text_width, 0.75, 32, styles.title, bold=True)
        left, right = split_columns(s.content)
        col_w = text_width / 2
        _add_bullets(slide, left, 0.5, 1.0, col_w, 4, 18, styles.text)
        _add_bullets(slide, right, 0.5 + col_w, 1.0, col_w, 4, 18, styles.text)

    else:
        _add_text(slide, s.title, 0.5, 0.2, text_width, 0.75, 32, styles.title, bold=True)
        _add_bullets(slide, s.content, 0.5, 1.0, text_width, 4, 20, styles.text)


def build_pptx(presentation: Presentation) -> bytes:
    prs = PptxPresentation()
    prs.slide_width = Inches(SLIDE_WIDTH_IN)
    prs.slide_height = Inches(SLIDE_HEIGHT_IN)
    styles = presentation.template.styles
    layout = prs.slide_layouts[BLANK_LAYOUT_INDEX]

    for s in presentation.slides:
        slide = prs.slides.add_slide(layout)
        fill = slide.background.fill
        fill.solid()
        fill.fore_color.rgb = _rgb(styles.background)

        has_image = _insert_picture(slide, s.image_url)
        _fill_slide(slide, s, styles, text_width=6.0 if has_image else 9.0)

    bio = BytesIO()
    prs.save(bio)
    return bio.getvalue()
