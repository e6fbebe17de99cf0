"""Unit tests for configuration loading."""

import pytest
from pydantic import ValidationError

from ask_finance.config import ContextConfig, EngineConfig, PatternConfig, load_config_file, load_engine_config
from ask_finance.config.loader import CONFIG_DIR_ENV


class TestLoader:
    """Tests for the YAML/JSON loader."""

    def test_env_expansion(self, tmp_path, monkeypatch):
        """Test ${VAR} and ${VAR:-default} substitution."""
        monkeypatch.setenv("FINANCE_MODEL", "gpt-4o-mini")
        monkeypatch.delenv("FINANCE_PORT", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("llm:\n  model: ${FINANCE_MODEL}\nserver:\n  port: ${FINANCE_PORT:-9000}\n")

        data = load_config_file(path)
        assert data == {"llm": {"model": "gpt-4o-mini"}, "server": {"port": "9000"}}

        config = load_engine_config(path)
        assert config.llm.model == "gpt-4o-mini"
        assert config.server.port == 9000

    def test_json_file(self, tmp_path):
        """Test JSON configuration."""
        path = tmp_path / "config.json"
        path.write_text('{"loop": {"max_iterations": 3}}')
        assert load_engine_config(path).loop.max_iterations == 3

    def test_missing_explicit_file(self, tmp_path):
        """Test that an explicit missing file is an error."""
        with pytest.raises(FileNotFoundError):
            load_engine_config(tmp_path / "absent.yaml")

    def test_unknown_extension(self, tmp_path):
        """Test that the format must be detectable."""
        path = tmp_path / "config.ini"
        path.write_text("[llm]")
        with pytest.raises(ValueError):
            load_config_file(path)

    def test_defaults_without_file(self, tmp_path, monkeypatch):
        """Test that defaults apply when the default file does not exist."""
        monkeypatch.setenv(CONFIG_DIR_ENV, str(tmp_path))
        assert load_engine_config() == EngineConfig()

    def test_default_file_used(self, tmp_path, monkeypatch):
        """Test that config.yaml in the config directory is picked up."""
        monkeypatch.setenv(CONFIG_DIR_ENV, str(tmp_path))
        (tmp_path / "config.yaml").write_text("patterns:\n  parallel_workers: false\n")
        assert load_engine_config().patterns.parallel_workers is False


class TestSchemas:
    """Tests for configuration validation."""

    def test_context_defaults_are_consistent(self):
        """Test that the default budgets validate."""
        config = ContextConfig()
        assert config.recent_message_chars > config.older_message_chars

    def test_recent_cap_must_fit_history_budget(self):
        """Test that the newest message cap must fit after reserves."""
        with pytest.raises(ValidationError):
            ContextConfig(max_total_chars=10_000, system_reserve_chars=4_000, knowledge_chars=4_000)

    def test_older_cap_not_above_recent(self):
        """Test the ordering of per-message caps."""
        with pytest.raises(ValidationError):
            ContextConfig(recent_message_chars=1_000, older_message_chars=2_000)

    def test_subtask_range(self):
        """Test that min_subtasks cannot exceed max_subtasks."""
        with pytest.raises(ValidationError):
            PatternConfig(min_subtasks=5, max_subtasks=2)

    def test_iteration_bounds(self):
        """Test the improvement cap bounds."""
        with pytest.raises(ValidationError):
            PatternConfig(max_improve_iterations=0)
