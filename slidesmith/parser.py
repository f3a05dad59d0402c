# slidesmith/parser.py
"""
Document text extraction for uploaded files.
Supports plain text, markdown, PDF (PyMuPDF) and DOCX (python-docx).
"""
import logging
import os
import re
from io import BytesIO
from typing import List

import fitz
from docx import Document
from markdown_it import MarkdownIt

from .config import ALLOWED_EXTS, MAX_FILE_MB
from .errors import ExtractionError

logger = logging.getLogger(__name__)

UNSUPPORTED_MESSAGE = "Unsupported file type. Please upload a .txt, .md, .pdf, or .docx file."


def _collapse_ws(s: str) -> str:
    return re.sub(r"\s+", " ", (s or "").strip())


def _decode(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def markdown_to_text(text: str) -> str:
    """Flatten markdown to one line per heading, paragraph or list item."""
    md = MarkdownIt()
    lines: List[str] = []
    for t in md.parse(text or ""):
        if t.type != "inline":
            continue
        content = re.sub(r"!\[.*?\]\(.*?\)", "", t.content)
        content = re.sub(r"\[([^\]]+)\]\([^)]+\)", r"\1", content)
        content = _collapse_ws(content)
        if content:
            lines.append(content)
    return "\n".join(lines)


def _pdf_to_text(data: bytes) -> str:
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            return "\n".join(page.get_text() for page in doc)
    except Exception as e:
        logger.warning("PDF parsing failed: %s", e)
        raise ExtractionError("Could not parse the PDF file. It might be corrupted or protected.") from e


def _docx_to_text(data: bytes) -> str:
    try:
        doc = Document(BytesIO(data))
    except Exception as e:
        logger.warning("DOCX parsing failed: %s", e)
        raise ExtractionError("Could not parse the DOCX file.") from e
    return "\n".join(p.text for p in doc.paragraphs if p.text.strip())


def extract_text(filename: str, data: bytes) -> str:
    ext = os.path.splitext((filename or "").lower())[1]
    if ext not in ALLOWED_EXTS:
        raise ExtractionError(UNSUPPORTED_MESSAGE)

    size_mb = len(data) / (1024 * 1024)
    if size_mb > MAX_FILE_MB:
        raise ExtractionError(f"File too large ({size_mb:.1f} MB). Max is {MAX_FILE_MB} MB.")

    if ext == ".txt":
        text = _decode(data)
    elif ext == ".md":
        text = markdown_to_text(_decode(data))
    elif ext == ".pdf":
        text = _pdf_to_text(data)
    else:
        text = _docx_to_text(data)

    if not text.strip():
        raise ExtractionError("The document does not contain any text.")
    logger.info("Extracted %d characters from %s", len(text), filename)
    return text
