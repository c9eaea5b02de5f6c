"""Runtime settings for arandu-deployments library."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from dotenv import dotenv_values
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_ENV_PREFIX
from .exceptions import ConfigurationError
from .paths import FrontendPaths, get_artifacts_dir, get_deployments_dir, get_frontend_paths


class EnvironmentSettings(BaseSettings):
    """
    Typed view of the ARANDU environment variables.

    Process environment wins over the .env file. Blank values fall back to
    the field default.
    """

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    deployments_dir: Optional[str] = Field(default=None, alias="ARANDU_DEPLOYMENTS_DIR")
    artifacts_dir: Optional[str] = Field(default=None, alias="ARANDU_ARTIFACTS_DIR")
    frontend_dir: Optional[str] = Field(default=None, alias="ARANDU_FRONTEND_DIR")
    env_prefix: str = Field(default=DEFAULT_ENV_PREFIX, alias="ARANDU_ENV_PREFIX")

    private_key: Optional[str] = Field(default=None, alias="PRIVATE_KEY")
    encrypted_key: Optional[str] = Field(default=None, alias="DEPLOYER_PRIVATE_KEY_ENCRYPTED")
    wallet_password: Optional[str] = Field(default=None, alias="DEPLOYER_PASSWORD")
    frontend_private_key: Optional[str] = Field(default=None, alias="FRONTEND_PRIVATE_KEY")
    network: Optional[str] = Field(default=None, alias="NETWORK")

    receipt_timeout: float = Field(default=300.0, gt=0, alias="ARANDU_RECEIPT_TIMEOUT")
    poll_interval: float = Field(default=2.0, ge=0, alias="ARANDU_POLL_INTERVAL")


def _describe(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        name = ".".join(str(part) for part in item["loc"])
        problems.append(f"{name}: {item['msg']}")
    return "; ".join(problems)


@dataclass(frozen=True)
class Settings:
    """
    Per-invocation configuration passed explicitly to each component.

    Built once (usually via from_env) and never mutated afterwards.
    """

    deployments_dir: Path
    artifacts_dir: Path
    frontend: FrontendPaths
    env_prefix: str = DEFAULT_ENV_PREFIX

    # Signing credentials
    private_key: Optional[str] = None
    encrypted_key: Optional[str] = None
    wallet_password: Optional[str] = None
    frontend_private_key: Optional[str] = None

    # Selected network when none is given on the command line
    default_network: Optional[str] = None

    # Transaction confirmation polling
    receipt_timeout: float = 300.0
    poll_interval: float = 2.0

    # Raw environment, used for network resolution (API keys, RPC overrides)
    env: Mapping[str, str] = field(default_factory=dict, repr=False)

    @classmethod
    def from_env(cls, dotenv_path: Optional[Union[Path, str]] = None) -> "Settings":
        """
        Build settings from the process environment and a .env file.

        Values from the process environment take precedence over values read
        from the .env file.

        Args:
            dotenv_path: .env file to merge in (defaults to ./.env if present)

        Returns:
            Settings instance

        Raises:
            ConfigurationError: If a variable has an invalid value
        """
        if dotenv_path is None:
            candidate = Path.cwd() / ".env"
            dotenv_path = candidate if candidate.exists() else None

        try:
            parsed = EnvironmentSettings(_env_file=dotenv_path)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid environment: {_describe(e)}") from e

        merged: Dict[str, str] = {}
        if dotenv_path is not None:
            merged.update(
                {k: v for k, v in dotenv_values(dotenv_path).items() if v is not None}
            )
        merged.update(os.environ)

        return cls(
            deployments_dir=get_deployments_dir(parsed.deployments_dir),
            artifacts_dir=get_artifacts_dir(parsed.artifacts_dir),
            frontend=get_frontend_paths(parsed.frontend_dir),
            env_prefix=parsed.env_prefix,
            private_key=parsed.private_key,
            encrypted_key=parsed.encrypted_key,
            wallet_password=parsed.wallet_password,
            frontend_private_key=parsed.frontend_private_key,
            default_network=parsed.network,
            receipt_timeout=parsed.receipt_timeout,
            poll_interval=parsed.poll_interval,
            env=merged,
        )
