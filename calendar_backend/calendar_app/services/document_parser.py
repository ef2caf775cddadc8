"""Turn a stored calendar document into plain text.

Failures are reported in the returned ``ParseResult`` rather than raised, so
the ingestion pipeline can log the stage and mark the upload failed.
"""
import logging
import os
import re
import zipfile
from dataclasses import dataclass, field

import mammoth

from calendar_app.services.pdf_parser import extract_text_from_pdf

logger = logging.getLogger(__name__)

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOC_MIME = "application/msword"
TEXT_MIME = "text/plain"
PDF_MIME = "application/pdf"

WORD_MIME_TYPES = {DOCX_MIME, DOC_MIME}
SUPPORTED_MIME_TYPES = WORD_MIME_TYPES | {TEXT_MIME, PDF_MIME}

LEGACY_TEXT_ENCODING = "cp1254"


@dataclass
class ParseResult:
    success: bool
    text: str | None = None
    messages: list[str] = field(default_factory=list)
    error: str | None = None


def parse_document(file_path: str | None, mime_type: str | None) -> ParseResult:
    if not file_path or not mime_type:
        return _failure("Missing file path or MIME type")
    if not os.path.exists(file_path):
        return _failure("File not found")
    if os.path.getsize(file_path) == 0:
        return _failure("File is empty")

    try:
        if mime_type in WORD_MIME_TYPES:
            return _parse_word(file_path)
        if mime_type == TEXT_MIME:
            return _parse_text(file_path)
        if mime_type == PDF_MIME:
            return _parse_pdf(file_path)
    except (OSError, ValueError, KeyError, zipfile.BadZipFile) as exc:
        # mammoth raises BadZipFile for legacy .doc and KeyError for non-OOXML archives
        logger.warning("Document decode failed for %s: %s", file_path, exc)
        return _failure(str(exc) or "Unknown parsing error")
    return _failure(f"Unsupported file type: {mime_type}")


def _parse_word(file_path: str) -> ParseResult:
    with open(file_path, "rb") as handle:
        result = mammoth.extract_raw_text(handle)
    text = normalize_word_text(result.value or "")
    if not text:
        return _failure("No readable text found")
    messages = [str(getattr(m, "message", m)) for m in result.messages]
    logger.info("Parsed Word document %s: %d chars, %d warnings", file_path, len(text), len(messages))
    return ParseResult(success=True, text=text, messages=messages)


def _parse_text(file_path: str) -> ParseResult:
    with open(file_path, "rb") as handle:
        raw = handle.read()
    messages = []
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        # Older Turkish exports are Windows-1254
        text = raw.decode(LEGACY_TEXT_ENCODING, errors="replace")
        messages.append(f"Text is not valid UTF-8; decoded as {LEGACY_TEXT_ENCODING}")
        logger.info("Decoded %s as %s", file_path, LEGACY_TEXT_ENCODING)
    text = text.replace("\r\n", "\n").replace("\r", "\n").lstrip("\ufeff")
    if not text.strip():
        return _failure("No readable text found")
    return ParseResult(success=True, text=text, messages=messages)


def _parse_pdf(file_path: str) -> ParseResult:
    with open(file_path, "rb") as handle:
        text = extract_text_from_pdf(handle.read())
    if not text:
        return _failure("No readable text found")
    return ParseResult(success=True, text=text)


def normalize_word_text(raw: str) -> str:
    """Flatten mammoth output: table rules become breaks, edge pipes go away."""
    text = raw.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\+(?:[-=]+\+)+", "\n", text)
    text = re.sub(r"^\s*\|\s*", "", text, flags=re.MULTILINE)
    text = re.sub(r"\s*\|\s*$", "", text, flags=re.MULTILINE)
    text = re.sub(r"\n\s*\n", "\n", text)
    return text.strip()


def _failure(error: str) -> ParseResult:
    return ParseResult(success=False, error=error)
