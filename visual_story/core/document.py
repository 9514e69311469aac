"""
PDF text extraction.

Drives PyMuPDF page by page: the words of a page are joined with single
spaces and every page ends with a newline.
"""

from typing import Iterable, List

import fitz  # PyMuPDF

from visual_story.core.logger import get_logger

logger = get_logger("document")


class DocumentError(Exception):
    """Raised when a document cannot be opened or read."""


def concatenate_pages(pages: Iterable[List[str]]) -> str:
    return "".join(" ".join(fragments) + "\n" for fragments in pages)


def page_fragments(page) -> List[str]:
    # get_text("words") -> (x0, y0, x1, y1, word, block_no, line_no, word_no)
    return [word[4] for word in page.get_text("words")]


def extract_text(data: bytes) -> str:
    """
    Extract the full text of a PDF given as raw bytes.

    Raises:
        DocumentError: If the document cannot be opened or a page fails to parse.
    """
    if not data:
        raise DocumentError("Failed to parse PDF: the file is empty.")

    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            pages = []
            for page_number in range(1, doc.page_count + 1):
                page = doc.load_page(page_number - 1)
                pages.append(page_fragments(page))
    except Exception as e:
        raise DocumentError(f"Failed to parse PDF: {e}") from e

    text = concatenate_pages(pages)
    logger.info(f"Extracted {len(text)} characters from {len(pages)} page(s)")
    return text
