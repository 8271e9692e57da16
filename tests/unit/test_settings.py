import pytest
from pydantic import ValidationError

from app.config.settings import Settings


class TestSettingsDefaults:
    def test_default_app_env(self) -> None:
        s = Settings()
        assert s.app_env == "dev"

    def test_default_db_port(self) -> None:
        s = Settings()
        assert s.db_port == 5432

    def test_default_ocr_engine(self) -> None:
        s = Settings()
        assert s.ocr_engine == "tesseract"

    def test_default_ocr_language_is_portuguese(self) -> None:
        s = Settings()
        assert s.ocr_language == "por"

    def test_default_storage_backend(self) -> None:
        s = Settings()
        assert s.storage_backend == "local"

    def test_default_max_document_size(self) -> None:
        s = Settings()
        assert s.max_document_size_bytes == 10 * 1024 * 1024


class TestSettingsFromEnv:
    def test_loads_app_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_ENV", "production")
        s = Settings()
        assert s.app_env == "production"

    def test_loads_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        s = Settings()
        assert s.log_level == "DEBUG"

    def test_loads_storage_backend(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STORAGE_BACKEND", "s3")
        monkeypatch.setenv("STORAGE_S3_BUCKET", "documents")
        s = Settings()
        assert s.storage_backend == "s3"
        assert s.storage_s3_bucket == "documents"

    def test_loads_upload_timeout(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("UPLOAD_TIMEOUT_SECONDS", "42")
        s = Settings()
        assert s.upload_timeout_seconds == 42

    def test_loads_verification_timezone(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VERIFICATION_TIMEZONE", "UTC")
        s = Settings()
        assert s.verification_timezone == "UTC"


class TestSettingsValidation:
    def test_invalid_db_port_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_PORT", "not_a_number")
        with pytest.raises(ValidationError):
            Settings()

    def test_invalid_ocr_timeout_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OCR_TIMEOUT_SECONDS", "abc")
        with pytest.raises(ValidationError):
            Settings()
