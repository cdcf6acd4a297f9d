"""Tests for livetrain.config — defaults and environment loading."""

import pytest

from livetrain.config import AppConfig


class TestAppConfig:
    def test_defaults(self) -> None:
        config = AppConfig()
        assert config.debug is False
        assert config.secret_key == ""
        assert config.database_url is None
        assert config.login_url == "/auth"
        assert config.session_detail_url == "/session/{session_id}"
        assert config.upcoming_sessions_url == "/upcoming-sessions"
        assert config.enrollment_check_timeout == 5.0

    def test_frozen(self) -> None:
        config = AppConfig()
        with pytest.raises(AttributeError):
            config.debug = True  # type: ignore[misc]


class TestFromEnv:
    def test_reads_prefixed_variables(self) -> None:
        config = AppConfig.from_env(
            {
                "LIVETRAIN_DEBUG": "true",
                "LIVETRAIN_SECRET_KEY": "s3cr3t",
                "LIVETRAIN_DATABASE_URL": "sqlite:///prod.db",
                "LIVETRAIN_ENROLLMENT_CHECK_TIMEOUT": "2.5",
                "LIVETRAIN_MAX_CONTENT_LENGTH": "2048",
                "LIVETRAIN_UPCOMING_SESSIONS_URL": "/sessions",
            }
        )
        assert config.debug is True
        assert config.secret_key == "s3cr3t"
        assert config.database_url == "sqlite:///prod.db"
        assert config.enrollment_check_timeout == 2.5
        assert config.max_content_length == 2048
        assert config.upcoming_sessions_url == "/sessions"

    def test_false_values(self) -> None:
        assert AppConfig.from_env({"LIVETRAIN_DEBUG": "0"}).debug is False

    def test_unset_fields_keep_defaults(self) -> None:
        assert AppConfig.from_env({"OTHER_DEBUG": "1"}) == AppConfig()

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LIVETRAIN_LOGIN_URL", "/signin")
        assert AppConfig.from_env().login_url == "/signin"

    def test_bad_number_raises(self) -> None:
        with pytest.raises(ValueError):
            AppConfig.from_env({"LIVETRAIN_MAX_CONTENT_LENGTH": "lots"})
