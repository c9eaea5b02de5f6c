"""Unit tests for runtime settings."""

from pathlib import Path

import pytest

from arandu_deployments.config import Settings
from arandu_deployments.constants import DEFAULT_ENV_PREFIX
from arandu_deployments.exceptions import ConfigurationError, DeploymentError

ENV_VARS = (
    "ARANDU_DEPLOYMENTS_DIR",
    "ARANDU_ARTIFACTS_DIR",
    "ARANDU_FRONTEND_DIR",
    "ARANDU_ENV_PREFIX",
    "ARANDU_RECEIPT_TIMEOUT",
    "ARANDU_POLL_INTERVAL",
    "PRIVATE_KEY",
    "DEPLOYER_PRIVATE_KEY_ENCRYPTED",
    "DEPLOYER_PASSWORD",
    "FRONTEND_PRIVATE_KEY",
    "NETWORK",
)


@pytest.fixture
def clean_env(tmp_path: Path, monkeypatch):
    """Run in an empty directory with no ARANDU variables set."""
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettingsFromEnv:
    """Test the Settings.from_env constructor."""

    def test_defaults(self, tmp_path: Path, clean_env):
        """Test defaults when nothing is configured."""
        settings = Settings.from_env()

        assert settings.deployments_dir == tmp_path / "deployments"
        assert settings.artifacts_dir == tmp_path / "artifacts"
        assert settings.frontend.root == tmp_path / "frontend"
        assert settings.env_prefix == DEFAULT_ENV_PREFIX
        assert settings.private_key is None
        assert settings.encrypted_key is None
        assert settings.default_network is None
        assert settings.receipt_timeout == 300.0
        assert settings.poll_interval == 2.0

    def test_reads_environment(self, tmp_path: Path, clean_env):
        """Test that environment values populate settings."""
        clean_env.setenv("ARANDU_DEPLOYMENTS_DIR", str(tmp_path / "d"))
        clean_env.setenv("ARANDU_FRONTEND_DIR", str(tmp_path / "web"))
        clean_env.setenv("ARANDU_ENV_PREFIX", "VITE")
        clean_env.setenv("PRIVATE_KEY", "0xabc")
        clean_env.setenv("NETWORK", "fuji")
        clean_env.setenv("ARANDU_POLL_INTERVAL", "0.5")

        settings = Settings.from_env()

        assert settings.deployments_dir == tmp_path / "d"
        assert settings.frontend.root == tmp_path / "web"
        assert settings.env_prefix == "VITE"
        assert settings.private_key == "0xabc"
        assert settings.default_network == "fuji"
        assert settings.poll_interval == 0.5
        assert settings.env["NETWORK"] == "fuji"

    def test_empty_values_are_none(self, clean_env):
        """Test that blank credentials count as absent."""
        clean_env.setenv("PRIVATE_KEY", "")
        clean_env.setenv("DEPLOYER_PASSWORD", "")

        settings = Settings.from_env()

        assert settings.private_key is None
        assert settings.wallet_password is None

    def test_empty_numbers_use_defaults(self, clean_env):
        """Test that blank timeouts fall back to the defaults."""
        clean_env.setenv("ARANDU_RECEIPT_TIMEOUT", "")
        clean_env.setenv("ARANDU_POLL_INTERVAL", "")

        settings = Settings.from_env()

        assert settings.receipt_timeout == 300.0
        assert settings.poll_interval == 2.0

    def test_invalid_number_raises(self, clean_env):
        """Test that a malformed timeout is a ConfigurationError."""
        clean_env.setenv("ARANDU_RECEIPT_TIMEOUT", "soon")

        with pytest.raises(ConfigurationError, match="ARANDU_RECEIPT_TIMEOUT"):
            Settings.from_env()

    def test_negative_poll_interval_raises(self, clean_env):
        """Test that a negative poll interval is rejected."""
        clean_env.setenv("ARANDU_POLL_INTERVAL", "-1")

        with pytest.raises(DeploymentError, match="ARANDU_POLL_INTERVAL"):
            Settings.from_env()

    def test_dotenv_file_is_merged(self, tmp_path: Path, clean_env):
        """Test that values come from the .env file."""
        dotenv = tmp_path / "deploy.env"
        dotenv.write_text("PRIVATE_KEY=0xfromfile\nNETWORK=sepolia\n")

        settings = Settings.from_env(dotenv_path=dotenv)

        assert settings.private_key == "0xfromfile"
        assert settings.default_network == "sepolia"
        assert settings.env["NETWORK"] == "sepolia"

    def test_environment_wins_over_dotenv(self, tmp_path: Path, clean_env):
        """Test that process environment takes precedence over .env."""
        dotenv = tmp_path / "deploy.env"
        dotenv.write_text("NETWORK=sepolia\n")
        clean_env.setenv("NETWORK", "fuji")

        settings = Settings.from_env(dotenv_path=dotenv)

        assert settings.default_network == "fuji"
        assert settings.env["NETWORK"] == "fuji"

    def test_default_dotenv_in_working_directory(self, tmp_path: Path, clean_env):
        """Test that ./.env is picked up when present."""
        (tmp_path / ".env").write_text("FRONTEND_PRIVATE_KEY=0xfront\n")

        settings = Settings.from_env()

        assert settings.frontend_private_key == "0xfront"
