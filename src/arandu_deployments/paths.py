"""Path management utilities for arandu-deployments library."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union


def get_default_project_dir() -> Path:
    """
    Get default project directory (current working directory).

    Returns:
        Absolute path of the working directory
    """
    return Path.cwd()


@dataclass(frozen=True)
class FrontendPaths:
    """Locations of the frontend artifacts written by synchronization."""

    root: Path

    @property
    def config_file(self) -> Path:
        return self.root / "src" / "config" / "arandu-config.js"

    @property
    def env_file(self) -> Path:
        return self.root / ".env"

    @property
    def abis_dir(self) -> Path:
        return self.root / "src" / "abis"

    @property
    def contracts_dir(self) -> Path:
        return self.root / "src" / "contracts"

    def bundle_file(self, network: str) -> Path:
        return self.contracts_dir / network / "deployedContracts.json"


def get_frontend_paths(frontend_root: Optional[Union[Path, str]] = None) -> FrontendPaths:
    """
    Get frontend artifact paths.

    Args:
        frontend_root: Custom frontend directory (defaults to ./frontend)

    Returns:
        FrontendPaths rooted at an absolute directory
    """
    if frontend_root is None:
        root = get_default_project_dir() / "frontend"
    else:
        root = Path(frontend_root).absolute()
    return FrontendPaths(root=root)


def get_deployments_dir(deployments_root: Optional[Union[Path, str]] = None) -> Path:
    """
    Get deployment record store root.

    Args:
        deployments_root: Custom directory (defaults to ./deployments)

    Returns:
        Absolute path of the store root
    """
    if deployments_root is None:
        return get_default_project_dir() / "deployments"
    return Path(deployments_root).absolute()


def get_artifacts_dir(artifacts_root: Optional[Union[Path, str]] = None) -> Path:
    """
    Get compiled artifacts directory (Hardhat layout).

    Args:
        artifacts_root: Custom directory (defaults to ./artifacts)

    Returns:
        Absolute path of the artifacts directory
    """
    if artifacts_root is None:
        return get_default_project_dir() / "artifacts"
    return Path(artifacts_root).absolute()


def get_wallets_file(wallets_root: Optional[Union[Path, str]] = None) -> Path:
    """
    Get the test wallets file path.

    Args:
        wallets_root: Custom wallets directory (defaults to ./wallets)

    Returns:
        Absolute path of test-wallets.json
    """
    if wallets_root is None:
        return get_default_project_dir() / "wallets" / "test-wallets.json"
    return Path(wallets_root).absolute() / "test-wallets.json"
