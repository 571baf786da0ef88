"""Tests for the klay command-line interface."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from klay.cli.main import build_parser, main, source_type_for
from klay.models.source import SourceType

DOCUMENT = (
    "Vector databases store embeddings and answer similarity queries.\n\n"
    "Cosine similarity compares the angle between two vectors."
)


def _write_config(tmp_path: Path, backend: str = "embedded") -> Path:
    config = {
        "infrastructure": {"backend": backend, "sqlite_path": str(tmp_path / "kb.db")},
        "embedding": {"provider": "hash", "dimensions": 64},
        "chunking": {"strategy": "recursive", "chunk_size": 200, "chunk_overlap": 40},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(config), encoding="utf-8")
    return path


def _run(argv: list[str]) -> int:
    with patch("klay.cli.main.configure_logging"), pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


# ======================================================================
# Parser
# ======================================================================


class TestParser:
    def test_ingest_arguments(self) -> None:
        args = build_parser().parse_args(
            ["ingest", "--file", "a.md", "--source-id", "s1", "--tag", "x", "--tag", "y"]
        )

        assert args.command == "ingest"
        assert args.source_id == "s1"
        assert args.tag == ["x", "y"]
        assert args.config == "config/config.yaml"

    def test_search_defaults(self) -> None:
        args = build_parser().parse_args(["search", "--query", "vectors"])

        assert args.top_k == 5
        assert args.min_score == 0.0

    def test_ingest_requires_source_id(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["ingest", "--file", "a.md"])

    def test_rejects_unknown_type(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(
                ["ingest", "--file", "a.md", "--source-id", "s", "--type", "DOCX"]
            )

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("notes.md", SourceType.MARKDOWN),
            ("page.HTML", SourceType.WEB),
            ("paper.pdf", SourceType.PDF),
            ("rows.csv", SourceType.CSV),
            ("README", SourceType.PLAIN_TEXT),
        ],
    )
    def test_source_type_for(self, path: str, expected: SourceType) -> None:
        assert source_type_for(path) is expected


# ======================================================================
# Commands
# ======================================================================


class TestCommands:
    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_ingest_search_lineage_deprecate(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        config = str(_write_config(tmp_path))
        doc = tmp_path / "vectors.md"
        doc.write_text(DOCUMENT, encoding="utf-8")

        assert _run(["--config", config, "ingest", "--file", str(doc), "--source-id", "notes"]) == 0
        out = capsys.readouterr().out
        assert "Ingestion complete" in out
        assert "hash-64" in out

        assert _run(["--config", config, "search", "--query", DOCUMENT, "--top-k", "1"]) == 0
        assert "notes v1" in capsys.readouterr().out

        assert _run(["--config", config, "lineage", "--unit", "notes"]) == 0
        out = capsys.readouterr().out
        assert "status ACTIVE" in out
        assert "v0 -> v1" in out

        assert _run(
            ["--config", config, "deprecate", "--unit", "notes", "--reason", "superseded"]
        ) == 0
        assert "Deprecated notes" in capsys.readouterr().out

    def test_ingest_missing_file_reports_step(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        config = str(_write_config(tmp_path))

        code = _run(
            ["--config", config, "ingest", "--file", str(tmp_path / "nope.md"), "--source-id", "s"]
        )

        assert code == 1
        err = capsys.readouterr().err
        assert "File not found" in err
        assert "Completed steps: none" in err

    def test_search_on_empty_store(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        config = str(_write_config(tmp_path))

        assert _run(["--config", config, "search", "--query", "anything"]) == 0
        assert "No results." in capsys.readouterr().out

    def test_lineage_of_unknown_unit(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        config = str(_write_config(tmp_path))

        assert _run(["--config", config, "lineage", "--unit", "ghost"]) == 1
        assert "SemanticUnit 'ghost' not found" in capsys.readouterr().err

    def test_in_memory_backend_warns(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        config = str(_write_config(tmp_path, backend="in_memory"))

        _run(["--config", config, "search", "--query", "x"])

        assert "nothing is kept" in capsys.readouterr().err

    def test_unknown_backend_is_reported(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        config = str(_write_config(tmp_path, backend="cloud"))

        assert _run(["--config", config, "search", "--query", "x"]) == 1
        assert "Unknown backend 'cloud'" in capsys.readouterr().err
