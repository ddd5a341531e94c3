"""
Page-level text extraction from uploaded documents.

Supports:
- .pdf: text of every page via PyMuPDF
- .txt / .md: UTF-8 text (with fallback for encoding errors); form feeds
  split pages, otherwise the whole file is page 1

Extracted pages are kept as a JSON sidecar file so the document viewer
can highlight glossary terms without re-parsing the original.
"""
import json
import logging
from pathlib import Path
from typing import List, Optional

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)


class ExtractionError(Exception):
    """Raised when text extraction fails."""
    pass


def _read_text(file_path: Path) -> str:
    try:
        try:
            return file_path.read_text(encoding='utf-8')
        except UnicodeDecodeError:
            logger.warning(f"UTF-8 decode failed for {file_path}, using errors='ignore'")
            return file_path.read_text(encoding='utf-8', errors='ignore')
    except OSError as e:
        raise ExtractionError(f"Failed to read text file: {e}")


def extract_pages_from_text(file_path: Path) -> List[str]:
    """Plain text and markdown: one page per form-feed separated block."""
    text = _read_text(file_path)
    return text.split('\f') if '\f' in text else [text]


def extract_pages_from_pdf(file_path: Path) -> List[str]:
    """
    Extract the text of each PDF page.

    Scanned PDFs yield empty pages; no OCR is attempted.
    """
    try:
        with fitz.open(file_path) as doc:
            return [page.get_text() for page in doc]
    except Exception as e:
        raise ExtractionError(f"Failed to extract text from PDF: {e}")


def extract_pages(file_path: Path, content_type: Optional[str] = None) -> List[str]:
    """
    Extract page texts from a document file.

    Raises:
        ExtractionError: If extraction fails or the format is not supported
    """
    suffix = file_path.suffix.lower()

    logger.info(f"Extracting text from {file_path} (suffix={suffix}, content_type={content_type})")

    if suffix == '.pdf' or content_type == 'application/pdf':
        return extract_pages_from_pdf(file_path)

    if suffix in ('.txt', '.md', '.markdown') or content_type in (
        'text/plain', 'text/markdown', 'text/x-markdown'
    ):
        return extract_pages_from_text(file_path)

    raise ExtractionError(f"Unsupported file format: {suffix}")


def save_pages(document_id: str, pages: List[str], output_dir: Path) -> Path:
    """Write the page texts as {output_dir}/{document_id}.pages.json."""
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / f"{document_id}.pages.json"
    output_path.write_text(json.dumps({'pages': pages}, ensure_ascii=False), encoding='utf-8')
    logger.info(f"Saved {len(pages)} extracted pages to {output_path}")
    return output_path


def load_pages(document_id: str, output_dir: Path) -> Optional[List[str]]:
    """Previously extracted page texts, or None if the sidecar is missing."""
    file_path = output_dir / f"{document_id}.pages.json"
    if not file_path.exists():
        return None
    try:
        return json.loads(file_path.read_text(encoding='utf-8')).get('pages', [])
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Unreadable page sidecar {file_path}: {e}")
        return None


def delete_pages(document_id: str, output_dir: Path) -> None:
    file_path = output_dir / f"{document_id}.pages.json"
    if file_path.exists():
        file_path.unlink()
