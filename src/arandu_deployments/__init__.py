"""
arandu-deployments: deployment orchestration for the ARANDU contract ecosystem
"""

from importlib.metadata import PackageNotFoundError, version

from .client import DemoProofProvider, DemoSession, ProofProvider
from .config import Settings
from .deployer import ContractDeployer
from .deployments import (
    DeploymentManager,
    deploy_to_network,
    generate_frontend_artifacts,
    migrate_placeholder,
    verify_network,
)
from .ecosystem import arandu_ecosystem, topological_order
from .exceptions import (
    ArtifactNotFoundError,
    ArtifactWriteError,
    BlockedActionError,
    ConfigurationError,
    ConfirmationTimeoutError,
    DefectiveRecordError,
    DeploymentError,
    DeploymentRevertedError,
    MissingCredentialError,
    RecordNotFoundError,
    RpcError,
    UnknownNetworkError,
    VerificationError,
)
from .networks import resolve_network
from .store import DeploymentRecordStore
from .synchronizer import FrontendConfigSynchronizer
from .types import (
    DEPLOYER,
    AddressOf,
    ContractDeploymentSpec,
    DeploymentRecord,
    FrontendConfigSnapshot,
    NetworkDescriptor,
)
from .verification import VerificationAgent

try:
    __version__ = version("arandu-deployments")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "DeploymentManager",
    "deploy_to_network",
    "generate_frontend_artifacts",
    "migrate_placeholder",
    "verify_network",
    "resolve_network",
    "ContractDeployer",
    "DeploymentRecordStore",
    "FrontendConfigSynchronizer",
    "VerificationAgent",
    "DemoSession",
    "ProofProvider",
    "DemoProofProvider",
    "Settings",
    "arandu_ecosystem",
    "topological_order",
    "AddressOf",
    "DEPLOYER",
    "ContractDeploymentSpec",
    "DeploymentRecord",
    "FrontendConfigSnapshot",
    "NetworkDescriptor",
    "DeploymentError",
    "UnknownNetworkError",
    "MissingCredentialError",
    "ConfigurationError",
    "DeploymentRevertedError",
    "ConfirmationTimeoutError",
    "RecordNotFoundError",
    "DefectiveRecordError",
    "ArtifactNotFoundError",
    "ArtifactWriteError",
    "VerificationError",
    "BlockedActionError",
    "RpcError",
]
