"""
Tests for LorevaultConfig.
"""

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from lorevault.config import LorevaultConfig


@pytest.fixture
def isolated_env(monkeypatch):
    """Run with a private copy of os.environ, free of LOREVAULT_* variables."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("LOREVAULT_")}
    monkeypatch.setattr(os, "environ", env)
    return env


class TestDefaults:
    def test_defaults(self) -> None:
        config = LorevaultConfig()
        assert config.storage_dir == Path("lorevault_data")
        assert config.log_level == "INFO"
        assert config.library_id_length == 12

    def test_log_level_normalized(self) -> None:
        assert LorevaultConfig(log_level=" debug ").log_level == "DEBUG"

    def test_unknown_log_level_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LorevaultConfig(log_level="chatty")

    @pytest.mark.parametrize("length", [7, 33])
    def test_id_length_bounds(self, length: int) -> None:
        with pytest.raises(ValidationError):
            LorevaultConfig(library_id_length=length)


class TestFromEnv:
    def test_reads_prefixed_variables(self, isolated_env, tmp_path) -> None:
        isolated_env["LOREVAULT_STORAGE_DIR"] = str(tmp_path / "store")
        isolated_env["LOREVAULT_LOG_LEVEL"] = "warning"
        isolated_env["LOREVAULT_LIBRARY_ID_LENGTH"] = "16"
        config = LorevaultConfig.from_env(tmp_path / "absent.env")
        assert config.storage_dir == tmp_path / "store"
        assert config.log_level == "WARNING"
        assert config.library_id_length == 16

    def test_missing_variables_use_defaults(self, isolated_env, tmp_path) -> None:
        config = LorevaultConfig.from_env(tmp_path / "absent.env")
        assert config == LorevaultConfig()

    def test_dotenv_file_loaded(self, isolated_env, tmp_path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("LOREVAULT_LOG_LEVEL=ERROR\n", encoding="utf-8")
        config = LorevaultConfig.from_env(env_file)
        assert config.log_level == "ERROR"

    def test_environment_beats_dotenv(self, isolated_env, tmp_path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("LOREVAULT_LOG_LEVEL=ERROR\n", encoding="utf-8")
        isolated_env["LOREVAULT_LOG_LEVEL"] = "DEBUG"
        assert LorevaultConfig.from_env(env_file).log_level == "DEBUG"

    def test_invalid_value_rejected(self, isolated_env, tmp_path) -> None:
        isolated_env["LOREVAULT_LIBRARY_ID_LENGTH"] = "three"
        with pytest.raises(ValidationError):
            LorevaultConfig.from_env(tmp_path / "absent.env")
