"""Tests for the settings and save log database."""

from pathlib import Path

from sqlgrid.database import Database, GridSettings, default_db_path, get_setting, set_setting


class TestSettings:
    """Tests for settings storage."""

    def test_roundtrip(self, settings_db):
        settings_db.set_setting("grid.row_height", 32)
        assert settings_db.get_setting("grid.row_height") == "32"
        assert settings_db.get_setting("missing", "x") == "x"

    def test_module_helpers_use_shared_db(self, settings_db):
        set_setting("theme.dark", "0")
        assert get_setting("theme.dark") == "0"
        assert settings_db.get_setting("theme.dark") == "0"

    def test_default_path_from_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SQLGRID_DB", str(tmp_path / "x.db"))
        assert default_db_path() == tmp_path / "x.db"
        monkeypatch.delenv("SQLGRID_DB")
        assert default_db_path() == Path.home() / ".sqlgrid" / "sqlgrid.db"

    def test_creates_parent_directory(self, tmp_path):
        db = Database(tmp_path / "nested" / "dir" / "s.db")
        assert db.db_path.exists()


class TestGridSettings:
    """Tests for GridSettings.load."""

    def test_defaults(self, settings_db):
        settings = GridSettings.load(settings_db)
        assert settings.row_height == 40
        assert settings.overscan == 5
        assert settings.column_min_width == 150
        assert settings.column_max_width == 300
        assert settings.export_directory == str(Path.home())
        assert settings.dark_theme

    def test_overrides(self, settings_db):
        settings_db.set_setting("grid.row_height", "28")
        settings_db.set_setting("grid.overscan", "2")
        settings_db.set_setting("export.directory", "/tmp/out")
        settings_db.set_setting("theme.dark", "0")
        settings = GridSettings.load(settings_db)
        assert settings.row_height == 28
        assert settings.overscan == 2
        assert settings.export_directory == "/tmp/out"
        assert not settings.dark_theme

    def test_invalid_values_fall_back(self, settings_db):
        settings_db.set_setting("grid.row_height", "tall")
        settings_db.set_setting("grid.overscan", "-3")
        settings = GridSettings.load(settings_db)
        assert settings.row_height == 40
        assert settings.overscan == 0

    def test_row_height_has_a_floor(self, settings_db):
        settings_db.set_setting("grid.row_height", "2")
        assert GridSettings.load(settings_db).row_height == 16


class TestSaveLog:
    """Tests for the save log."""

    def test_log_and_read_newest_first(self, settings_db):
        settings_db.log_save("people", 1, 1, 0.01, "success", statements=["UPDATE a", "UPDATE b"])
        settings_db.log_save("people", 2, 3, 0.02, "error", "boom")
        log = settings_db.get_save_log()
        assert [entry["status"] for entry in log] == ["error", "success"]
        assert log[0]["error_message"] == "boom"
        assert log[1]["statements"] == "UPDATE a\nUPDATE b"
        assert log[0]["cell_count"] == 3

    def test_clear(self, settings_db):
        settings_db.log_save("people")
        settings_db.clear_save_log()
        assert settings_db.get_save_log() == []
