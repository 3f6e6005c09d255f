"""Tests for the command line interface."""

import json
from pathlib import Path

import pytest

from ...core import CatalogEntry, CatalogSnapshot, FileReference
from ..main import create_parser, main


def write_catalog(tmp_path: Path) -> Path:
    """Helper writing a small catalog snapshot with one duplicate pair."""
    rom_dir = tmp_path / "roms"
    rom_dir.mkdir()
    (rom_dir / "Tetris (USA).gb").write_bytes(b"\x00")

    snapshot = CatalogSnapshot(
        entries=[
            CatalogEntry(
                id="1",
                name="Tetris",
                platform_ids={"gb"},
                files=[FileReference(index=0, declared_path=str(rom_dir / "Tetris (USA).gb"))],
            ),
            CatalogEntry(
                id="2",
                name="Tetris",
                platform_ids={"gb"},
                files=[FileReference(index=0, declared_path=str(rom_dir / "Tetris (Europe).gb"))],
            ),
        ],
        platforms={"gb": "Nintendo Game Boy"},
        selected_ids=["1"],
    )
    path = tmp_path / "catalog.json"
    path.write_text(snapshot.model_dump_json(), encoding="utf-8")
    return path


class TestParser:
    """Test cases for the argument parser."""

    def test_defaults(self) -> None:
        """Test default option values."""
        args = create_parser().parse_args(["catalog.json"])

        assert args.using == "selected"
        assert args.against == "all"
        assert args.field == "file-name"
        assert args.grouping_threshold == 0.99
        assert args.category == "same-platform"
        assert args.output_format == "text"

    def test_invalid_choice(self) -> None:
        """Test that unknown choices are rejected."""
        with pytest.raises(SystemExit):
            create_parser().parse_args(["catalog.json", "--category", "bogus"])


class TestMain:
    """Test cases for the main entry point."""

    def test_text_output(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        """Test a search printed as text."""
        catalog = write_catalog(tmp_path)

        assert main([str(catalog), "--detailed"]) == 0

        output = capsys.readouterr().out
        assert "Duplicate groups: 1" in output
        assert "DELETE" in output
        assert "Tetris (Europe).gb" in output

    def test_json_output(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        """Test a search printed as JSON."""
        catalog = write_catalog(tmp_path)

        assert main([str(catalog), "--output-format", "json"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert len(data["groups"]) == 1
        members = data["groups"][0]["members"]
        assert [m["suggested_delete"] for m in members] == [False, True]

    def test_missing_files(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        """Test listing entries whose files are missing."""
        catalog = write_catalog(tmp_path)

        assert main([str(catalog), "--missing-files", "--output-format", "json"]) == 0

        reports = json.loads(capsys.readouterr().out)
        assert [r["entry_id"] for r in reports] == ["2"]
        assert reports[0]["remove_entry"]

    def test_missing_catalog(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        """Test that a missing catalog file is an error."""
        assert main([str(tmp_path / "nope.json")]) == 1
        assert "Catalog file not found" in capsys.readouterr().out

    def test_invalid_catalog(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        """Test that a malformed catalog file is an error."""
        path = tmp_path / "catalog.json"
        path.write_text('{"entries": [{"id": 1}]}', encoding="utf-8")

        assert main([str(path)]) == 1
        assert "invalid catalog" in capsys.readouterr().out
