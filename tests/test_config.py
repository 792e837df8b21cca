from pathlib import Path

from quickdrop.config import Settings
from quickdrop.errors import TotalSizeExceeded, format_size


class TestSettings:
    def test_unprefixed_port_and_uploads_dir(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PORT", "4000")
        monkeypatch.setenv("UPLOADS_DIR", str(tmp_path))

        settings = Settings()

        assert settings.port == 4000
        assert settings.uploads_dir == Path(tmp_path)

    def test_generic_variables_are_ignored(self, monkeypatch):
        monkeypatch.setenv("DEBUG", "true")
        monkeypatch.setenv("HOST", "0.0.0.0")

        settings = Settings()

        assert settings.debug is False
        assert settings.host == "127.0.0.1"

    def test_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("QUICKDROP_DEBUG", "true")
        monkeypatch.setenv("QUICKDROP_PORT", "5000")

        settings = Settings()

        assert settings.debug is True
        assert settings.port == 5000


class TestSizeMessages:
    def test_format_size(self):
        assert format_size(200 * 1024 * 1024) == "200MB"
        assert format_size(1536) == "1.5KB"
        assert format_size(100) == "100 bytes"

    def test_small_limits_are_not_rounded_to_zero(self):
        assert str(TotalSizeExceeded(100)) == "Total file size exceeds 100 bytes limit"
        assert str(TotalSizeExceeded(200 * 1024 * 1024)) == "Total file size exceeds 200MB limit"
