"""Tests for the administrative CLI."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yaml

from docverify.cli import _print_summary, authorize, import_authorized, main
from docverify.db.repository import AuthorizationRegistry
from docverify.db.session import create_db_engine, create_session_factory
from docverify.utils.config import AppConfig, DatabaseConfig


@pytest.fixture
def cli_config(tmp_path: Path) -> AppConfig:
    """Configuration backed by a SQLite file so separate engines share data."""
    return AppConfig(database=DatabaseConfig(url=f"sqlite:///{tmp_path / 'cli.db'}"))


@pytest.fixture
def config_file(tmp_path: Path, cli_config: AppConfig) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"database": {"url": cli_config.database.url}}))
    return path


def _authorized(config: AppConfig, doc_number: str):
    engine = create_db_engine(config.database)
    try:
        with create_session_factory(engine)() as session:
            entry = AuthorizationRegistry(session).lookup(doc_number)
            return None if entry is None else entry.doc_type
    finally:
        engine.dispose()


def _write_csv(path: Path, rows: list[str], header: str = "docNumber,docType") -> Path:
    path.write_text("\n".join([header, *rows]) + "\n")
    return path


class TestAuthorize:
    """Tests for authorizing a single document number."""

    def test_authorize(self, cli_config: AppConfig) -> None:
        assert authorize(cli_config, "AB123", "passport") is True
        assert _authorized(cli_config, "AB123") == "passport"

    def test_authorize_twice(self, cli_config: AppConfig) -> None:
        authorize(cli_config, "AB123", "passport")
        assert authorize(cli_config, "AB123", "passport") is False


class TestImportAuthorized:
    """Tests for CSV import."""

    def test_import(self, tmp_path: Path, cli_config: AppConfig) -> None:
        csv_path = _write_csv(
            tmp_path / "docs.csv", ["AB123,passport", "CD456,id-card", "EF789,"]
        )
        summary = import_authorized(cli_config, csv_path)

        assert summary == {"total": 3, "added": 3, "skipped": 0}
        assert _authorized(cli_config, "CD456") == "id-card"
        assert _authorized(cli_config, "EF789") is None
        assert _authorized(cli_config, "ZZ000") is None

    def test_skips_existing_and_blank(self, tmp_path: Path, cli_config: AppConfig) -> None:
        authorize(cli_config, "AB123", "passport")
        csv_path = _write_csv(
            tmp_path / "docs.csv", ["AB123,passport", ",passport", "CD456,id-card"]
        )
        assert import_authorized(cli_config, csv_path) == {
            "total": 3,
            "added": 1,
            "skipped": 2,
        }

    def test_duplicate_rows_in_file(self, tmp_path: Path, cli_config: AppConfig) -> None:
        csv_path = _write_csv(tmp_path / "docs.csv", ["AB123,passport", "AB123,passport"])
        assert import_authorized(cli_config, csv_path)["added"] == 1

    def test_missing_columns(self, tmp_path: Path, cli_config: AppConfig) -> None:
        csv_path = _write_csv(tmp_path / "docs.csv", ["AB123"], header="number")
        with pytest.raises(ValueError, match="docNumber"):
            import_authorized(cli_config, csv_path)


class TestPrintSummary:
    """Tests for the summary printer."""

    def test_print_summary(self, capsys: pytest.CaptureFixture) -> None:
        _print_summary({"total": 4, "added": 3, "skipped": 1}, Path("docs.csv"))
        captured = capsys.readouterr()
        assert "Import Complete" in captured.out
        assert "Added:   3" in captured.out
        assert "Skipped: 1" in captured.out


class TestCLIMain:
    """Tests for the main CLI entry point."""

    def test_no_command_shows_help(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0

    def test_init_db(self, config_file: Path, capsys: pytest.CaptureFixture) -> None:
        main(["-c", str(config_file), "init-db"])
        assert "Database tables created" in capsys.readouterr().out

    def test_authorize_command(
        self, config_file: Path, cli_config: AppConfig, capsys: pytest.CaptureFixture
    ) -> None:
        main(["-c", str(config_file), "authorize", "AB123", "passport"])
        assert "Authorized AB123" in capsys.readouterr().out
        main(["-c", str(config_file), "authorize", "AB123", "passport"])
        assert "already authorized" in capsys.readouterr().out
        assert _authorized(cli_config, "AB123") == "passport"

    def test_import_command(
        self, tmp_path: Path, config_file: Path, capsys: pytest.CaptureFixture
    ) -> None:
        csv_path = _write_csv(tmp_path / "docs.csv", ["AB123,passport"])
        main(["-c", str(config_file), "import-authorized", str(csv_path)])
        assert "Added:   1" in capsys.readouterr().out

    def test_import_missing_file(self, tmp_path: Path, config_file: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["-c", str(config_file), "import-authorized", str(tmp_path / "no.csv")])
        assert exc_info.value.code == 1

    def test_import_bad_columns(self, tmp_path: Path, config_file: Path) -> None:
        csv_path = _write_csv(tmp_path / "docs.csv", ["x"], header="number")
        with pytest.raises(SystemExit) as exc_info:
            main(["-c", str(config_file), "import-authorized", str(csv_path)])
        assert exc_info.value.code == 1

    @patch("docverify.cli.serve")
    def test_serve(self, mock_serve: MagicMock, config_file: Path) -> None:
        main(["-c", str(config_file), "serve"])
        (config,), _ = mock_serve.call_args
        assert config.database.url.endswith("cli.db")
