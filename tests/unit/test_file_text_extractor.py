"""Unit tests for FileTextExtractor."""

from __future__ import annotations

from pathlib import Path

import fitz
import pytest

from klay.providers.extraction.file_text_extractor import FileTextExtractor
from klay.utils.errors import ExtractionError
from klay.utils.text import content_hash


@pytest.fixture()
def extractor() -> FileTextExtractor:
    return FileTextExtractor()


def _write(tmp_path: Path, name: str, content: str) -> Path:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


class TestPlainFormats:
    @pytest.mark.asyncio
    async def test_markdown(self, extractor: FileTextExtractor, tmp_path: Path) -> None:
        path = _write(tmp_path, "notes.md", "# Title\n\nBody text.")

        result = await extractor.extract(str(path), "text/markdown")

        assert result.text == "# Title\n\nBody text."
        assert result.content_hash == content_hash("# Title\n\nBody text.")
        assert result.mime_type == "text/markdown"
        assert result.metadata["filename"] == "notes.md"
        assert result.metadata["char_count"] == len(result.text)

    @pytest.mark.asyncio
    async def test_file_uri(self, extractor: FileTextExtractor, tmp_path: Path) -> None:
        path = _write(tmp_path, "plain.txt", "hello")

        result = await extractor.extract(path.as_uri(), "text/plain")

        assert result.text == "hello"

    @pytest.mark.asyncio
    async def test_csv_is_kept_verbatim(self, extractor: FileTextExtractor, tmp_path: Path) -> None:
        path = _write(tmp_path, "rows.csv", "a,b\n1,2\n")

        result = await extractor.extract(str(path), "text/csv")

        assert result.text == "a,b\n1,2\n"

    @pytest.mark.asyncio
    async def test_same_content_same_hash(
        self, extractor: FileTextExtractor, tmp_path: Path
    ) -> None:
        a = _write(tmp_path, "a.txt", "identical")
        b = _write(tmp_path, "b.txt", "identical")

        first = await extractor.extract(str(a), "text/plain")
        second = await extractor.extract(str(b), "text/plain")

        assert first.content_hash == second.content_hash


class TestStructuredFormats:
    @pytest.mark.asyncio
    async def test_json(self, extractor: FileTextExtractor, tmp_path: Path) -> None:
        path = _write(tmp_path, "data.json", '{"key": "value"}')

        result = await extractor.extract(str(path), "application/json")

        assert result.text == '{"key": "value"}'

    @pytest.mark.asyncio
    async def test_invalid_json(self, extractor: FileTextExtractor, tmp_path: Path) -> None:
        path = _write(tmp_path, "bad.json", "{not json")

        with pytest.raises(ExtractionError, match="Invalid JSON"):
            await extractor.extract(str(path), "application/json")

    @pytest.mark.asyncio
    async def test_html_strips_markup_and_scripts(
        self, extractor: FileTextExtractor, tmp_path: Path
    ) -> None:
        html = (
            "<html><head><title>Page</title><style>p {color: red}</style></head>"
            "<body><h1>Heading</h1><script>alert(1)</script><p>Paragraph text.</p></body></html>"
        )
        path = _write(tmp_path, "page.html", html)

        result = await extractor.extract(str(path), "text/html")

        assert "Heading" in result.text
        assert "Paragraph text." in result.text
        assert "alert" not in result.text
        assert "color" not in result.text
        assert result.metadata["title"] == "Page"

    @pytest.mark.asyncio
    async def test_pdf(self, extractor: FileTextExtractor, tmp_path: Path) -> None:
        path = tmp_path / "doc.pdf"
        doc = fitz.open()
        page = doc.new_page()
        page.insert_text((72, 72), "Hello from a PDF page")
        doc.save(str(path))
        doc.close()

        result = await extractor.extract(str(path), "application/pdf")

        assert "Hello from a PDF page" in result.text
        assert result.metadata["pages"] == 1


class TestExtractionErrors:
    @pytest.mark.asyncio
    async def test_missing_file(self, extractor: FileTextExtractor, tmp_path: Path) -> None:
        with pytest.raises(ExtractionError, match="File not found"):
            await extractor.extract(str(tmp_path / "nope.txt"), "text/plain")

    @pytest.mark.asyncio
    async def test_unsupported_type(self, extractor: FileTextExtractor, tmp_path: Path) -> None:
        path = _write(tmp_path, "x.bin", "data")

        with pytest.raises(ExtractionError, match="Unsupported MIME type"):
            await extractor.extract(str(path), "application/octet-stream")

    @pytest.mark.asyncio
    async def test_remote_uri_rejected(self, extractor: FileTextExtractor) -> None:
        with pytest.raises(ExtractionError, match="file://"):
            await extractor.extract("https://example.com/page.html", "text/html")

    @pytest.mark.asyncio
    async def test_whitespace_only_file(self, extractor: FileTextExtractor, tmp_path: Path) -> None:
        path = _write(tmp_path, "blank.txt", "  \n\t\n")

        with pytest.raises(ExtractionError, match="No text"):
            await extractor.extract(str(path), "text/plain")

    def test_supports(self, extractor: FileTextExtractor) -> None:
        assert extractor.supports("application/pdf") is True
        assert extractor.supports("image/png") is False
