"""Unit tests for the command-line entry point.

Tests cover:
- Log level priority (CLI > env > config)
- Each subcommand against a temporary SQLite database
- Exit codes for configuration, domain and usage errors
"""

from unittest.mock import patch

import pytest

from vinculo.config.environment import EnvironmentConfig
from vinculo.config.exceptions import ConfigurationError
from vinculo.config.models import AppConfig, LoggingConfig
from vinculo.domain.models import Actor, Role
from vinculo.main import load_runtime_config, main
from vinculo.persistence import close_database, init_database
from vinculo.service import MatchingService
from tests.helpers import make_capacity, make_challenge


class TestLoadRuntimeConfig:
    """Test suite for load_runtime_config helper."""

    def test_log_level_priority(self, tmp_path):
        config_file = tmp_path / "config.yaml"

        with patch("vinculo.main.load_config") as mock_load:
            app_config = AppConfig(logging=LoggingConfig(level="WARNING"))
            env_config = EnvironmentConfig(log_level="INFO")
            mock_load.return_value = (app_config, env_config)

            # CLI override takes precedence
            _, resolved = load_runtime_config(config_file, "DEBUG")
            assert resolved.log_level == "DEBUG"

            # Env override takes precedence over config
            env_config.log_level = "INFO"
            _, resolved = load_runtime_config(config_file, None)
            assert resolved.log_level == "INFO"

            # Config value used when no overrides
            env_config.log_level = None
            _, resolved = load_runtime_config(config_file, None)
            assert resolved.log_level == "WARNING"


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Point the CLI at a temporary database with no config file."""
    db_url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATABASE_URL", db_url)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    with patch("vinculo.main.configure_logging"):
        yield db_url
    close_database()


@pytest.mark.filterwarnings("ignore:No configuration file found")
class TestMain:
    """Test suite for main() subcommands."""

    def test_init_db(self, cli_env, tmp_path, capsys):
        assert main(["init-db"]) == 0
        assert (tmp_path / "cli.db").exists()
        assert "ready" in capsys.readouterr().out

    def test_toggle_on_off_status(self, cli_env, capsys):
        assert main(["toggle", "status"]) == 0
        assert "disabled" in capsys.readouterr().out

        assert main(["toggle", "on"]) == 0
        assert "Match system is enabled" in capsys.readouterr().out

        assert main(["toggle", "status"]) == 0
        assert "enabled" in capsys.readouterr().out

        assert main(["toggle", "off"]) == 0
        assert "disabled" in capsys.readouterr().out

    def test_rank_and_keyword_stats(self, cli_env, capsys):
        init_database(cli_env)
        service = MatchingService()
        challenge = make_challenge(service, Actor(user_id=10, role=Role.EXTERNO), "agua, riego")
        capacity = make_capacity(service, Actor(user_id=20, role=Role.UNSA), "riego, agua, suelo")
        close_database()

        assert main(["rank", "challenge", str(challenge.id)]) == 0
        out = capsys.readouterr().out
        assert f"{capacity.id}\tscore=2\tagua, riego" in out

        assert main(["keyword-stats", "--limit", "1"]) == 0
        assert capsys.readouterr().out.strip() == "1\tagua"

    def test_rank_without_overlap(self, cli_env, capsys):
        assert main(["rank", "capacity", "5"]) == 0
        assert "No keyword overlap" in capsys.readouterr().out

    def test_domain_error_exit_code(self, cli_env, capsys):
        assert main(["rank", "capacity", "0"]) == 2
        assert "Invalid entity id" in capsys.readouterr().err

    def test_configuration_error_exit_code(self, cli_env, capsys):
        with patch("vinculo.main.load_config", side_effect=ConfigurationError("bad config")):
            assert main(["init-db"]) == 1
        assert "Configuration Error: bad config" in capsys.readouterr().err

    def test_missing_command_is_usage_error(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2
