"""Text extractor for local files.

Reads a local path or ``file://`` uri and returns its text according to
the MIME type derived from the source type:

* ``text/plain``, ``text/markdown``, ``text/csv`` -- decoded as UTF-8.
* ``application/json`` -- validated as JSON, kept as its original text.
* ``text/html`` -- tags stripped with BeautifulSoup (``<script>`` and
  ``<style>`` removed first).
* ``application/pdf`` -- page text via PyMuPDF (fitz), pages joined by
  blank lines.

Parsing runs in a worker thread so the event loop is not blocked.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from urllib.parse import unquote, urlparse

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog
from bs4 import BeautifulSoup

from klay.interfaces.text_extractor import ITextExtractor
from klay.models.source import ExtractedContent
from klay.utils.errors import ExtractionError
from klay.utils.text import content_hash

logger = structlog.get_logger(logger_name=__name__)

_PLAIN_TYPES = frozenset({"text/plain", "text/markdown", "text/csv"})
_SUPPORTED_TYPES = _PLAIN_TYPES | {"application/json", "text/html", "application/pdf"}


class FileTextExtractor(ITextExtractor):
    def supports(self, mime_type: str) -> bool:
        return mime_type in _SUPPORTED_TYPES

    async def extract(self, uri: str, mime_type: str) -> ExtractedContent:
        if not self.supports(mime_type):
            raise ExtractionError(
                message=f"Unsupported MIME type '{mime_type}' for {uri}",
                provider_name="file",
            )
        path = _resolve_path(uri)
        if not path.is_file():
            raise ExtractionError(message=f"File not found: {uri}", provider_name="file")

        text, metadata = await asyncio.to_thread(self._read, path, mime_type)
        if not text.strip():
            raise ExtractionError(message=f"No text could be extracted from {uri}", provider_name="file")

        metadata["char_count"] = len(text)
        logger.info("text_extracted", uri=uri, mime_type=mime_type, chars=len(text))
        return ExtractedContent(
            text=text,
            content_hash=content_hash(text),
            mime_type=mime_type,
            metadata=metadata,
        )

    def _read(self, path: Path, mime_type: str) -> tuple[str, dict[str, str | int]]:
        metadata: dict[str, str | int] = {"filename": path.name}
        if mime_type == "application/pdf":
            text, pages = self._read_pdf(path)
            metadata["pages"] = pages
            return text, metadata

        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ExtractionError(message=f"Cannot read {path}: {exc}", provider_name="file") from exc

        if mime_type == "application/json":
            try:
                json.loads(raw)
            except json.JSONDecodeError as exc:
                raise ExtractionError(
                    message=f"Invalid JSON in {path}: {exc}", provider_name="file"
                ) from exc
            return raw, metadata
        if mime_type == "text/html":
            return self._html_to_text(raw, metadata), metadata
        return raw, metadata

    @staticmethod
    def _html_to_text(html: str, metadata: dict[str, str | int]) -> str:
        soup = BeautifulSoup(html, "html.parser")
        for tag in soup(["script", "style"]):
            tag.decompose()
        if soup.title and soup.title.string:
            metadata["title"] = soup.title.string.strip()
        lines = (line.strip() for line in soup.get_text(separator="\n").splitlines())
        return "\n".join(line for line in lines if line)

    @staticmethod
    def _read_pdf(path: Path) -> tuple[str, int]:
        try:
            doc = fitz.open(str(path))
        except Exception as exc:
            raise ExtractionError(message=f"Cannot open PDF {path}: {exc}", provider_name="pymupdf") from exc

        pages: list[str] = []
        try:
            page_count = len(doc)
            for page_num in range(page_count):
                text = doc[page_num].get_text("text").strip()
                if text:
                    pages.append(text)
        finally:
            doc.close()
        return "\n\n".join(pages), page_count


def _resolve_path(uri: str) -> Path:
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    if parsed.scheme and len(parsed.scheme) > 1:
        raise ExtractionError(
            message=f"Only local paths and file:// uris are supported, got {uri}",
            provider_name="file",
        )
    # No scheme, or a Windows drive letter.
    return Path(uri)
