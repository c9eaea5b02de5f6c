"""Custom exception classes for arandu-deployments library."""


class DeploymentError(Exception):
    """Base exception for deployment-related errors."""

    pass


class UnknownNetworkError(DeploymentError, ValueError):
    """Raised when a network name is not in the network configuration."""

    pass


class MissingCredentialError(DeploymentError, ValueError):
    """Raised when a required key, password or API credential is absent."""

    pass


class ConfigurationError(DeploymentError, ValueError):
    """Raised when an environment setting has an invalid value."""

    pass


class DeploymentRevertedError(DeploymentError, RuntimeError):
    """Raised when a deployment transaction reverts or cannot be submitted."""

    pass


class ConfirmationTimeoutError(DeploymentError, TimeoutError):
    """Raised when a transaction receipt or its confirmations do not arrive in time."""

    pass


class RecordNotFoundError(DeploymentError, LookupError):
    """Raised when a deployment record is not in the record store."""

    pass


class DefectiveRecordError(DeploymentError, ValueError):
    """Raised when a deployment file lacks an address or ABI."""

    pass


class ArtifactNotFoundError(DeploymentError, FileNotFoundError):
    """Raised when a compiled contract artifact or build info is missing."""

    pass


class ArtifactWriteError(DeploymentError, OSError):
    """Raised when a frontend artifact cannot be written."""

    pass


class VerificationError(DeploymentError, RuntimeError):
    """Raised when block explorer source verification fails."""

    pass


class BlockedActionError(DeploymentError, PermissionError):
    """Raised when a mutating action is attempted without a signer."""

    pass


class RpcError(DeploymentError, RuntimeError):
    """Raised when a JSON-RPC call fails at the transport or protocol level."""

    pass
