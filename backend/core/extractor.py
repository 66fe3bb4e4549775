"""
ScriptSentries Page Extractor
=============================
Splits a PDF script into ordered page texts.

Callers own the file they pass in and are responsible for deleting it;
the extractor never copies or keeps it.
"""

import asyncio
import logging
from pathlib import Path

import pdfplumber

logger = logging.getLogger(__name__)


class PageExtractor:
    """Extracts text page-by-page from native (text-based) PDFs."""

    async def extract_pages(self, file_path: Path) -> list[str]:
        """
        Extract all text pages from a PDF file.

        Args:
            file_path: Path to the PDF file (caller is responsible for deletion)

        Returns:
            Ordered list of page texts; index 0 is page 1
        """
        pages = await asyncio.to_thread(self._extract_sync, file_path)
        logger.info(f"PDF loaded: {len(pages)} pages")
        return pages

    def _extract_sync(self, file_path: Path) -> list[str]:
        with pdfplumber.open(str(file_path)) as pdf:
            return [(page.extract_text() or "").strip() for page in pdf.pages]
