"""Main API for arandu-deployments library."""

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from eth_account.signers.local import LocalAccount

from .artifacts import ArtifactLoader
from .config import Settings
from .constants import PLACEHOLDER_NETWORK, ROLE_CONTRACTS, VERIFIER_CONTRACTS
from .deployer import ContractDeployer
from .ecosystem import arandu_ecosystem
from .exceptions import RecordNotFoundError
from .networks import resolve_network
from .rpc import RpcClient
from .store import DeploymentRecordStore
from .synchronizer import FrontendConfigSynchronizer
from .types import DeploymentRecord, NetworkDescriptor, PipelineResult, SyncReport, VerificationResult
from .verification import VerificationAgent
from .wallets import load_signer

logger = logging.getLogger(__name__)


class DeploymentManager:
    """Read access to the deployment records of every network."""

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize the deployment manager.

        Args:
            settings: Runtime settings. If None, built from the environment.
        """
        self.settings = settings or Settings.from_env()
        self.store = DeploymentRecordStore(self.settings.deployments_dir)

    def networks(self) -> List[str]:
        return self.store.networks()

    def has_network(self, network: str) -> bool:
        """
        Check if a network has deployment records.

        Args:
            network: Network name to check

        Returns:
            True if the network has a bucket in the store, False otherwise
        """
        return self.store.has_network(network)

    def contract_names(self, network: str) -> List[str]:
        """
        Get the names of all contracts deployed to a network.

        Args:
            network: Network name

        Returns:
            Sorted contract names

        Raises:
            RecordNotFoundError: If the network has no records
        """
        if not self.has_network(network):
            raise RecordNotFoundError(f"Network '{network}' has no deployment records")
        return [record.contract_name for record in self.store.list(network)]

    def deployment(self, contract_name: str, network: str) -> DeploymentRecord:
        """
        Get the deployment record of a contract.

        Args:
            contract_name: Contract name (e.g. "Registrar")
            network: Network name

        Returns:
            DeploymentRecord

        Raises:
            RecordNotFoundError: If the contract has no record on the network
        """
        return self.store.get(network, contract_name)

    def all_deployments(self, network: str) -> Dict[str, DeploymentRecord]:
        return {record.contract_name: record for record in self.store.list(network)}

    def has_contract(self, contract_name: str, network: str) -> bool:
        return self.store.has(network, contract_name)

    def network_info(self, network: str) -> Dict[str, Any]:
        """
        Summarize a network and the addresses of its ecosystem roles.

        Args:
            network: Network name

        Returns:
            Dictionary with chain details and role -> address entries

        Raises:
            UnknownNetworkError: If the network is not configured
        """
        descriptor = resolve_network(network, self.settings.env)
        records = self.all_deployments(descriptor.name)

        roles = {
            role: records[name].address for role, name in ROLE_CONTRACTS.items() if name in records
        }
        verifiers = {
            kind: records[name].address
            for kind, name in VERIFIER_CONTRACTS.items()
            if name in records
        }
        return {
            "name": descriptor.name,
            "chain_id": descriptor.chain_id,
            "chain_name": descriptor.chain_name,
            "explorer_url": descriptor.explorer_url,
            "live": descriptor.live,
            "contracts": dict(roles, VERIFIERS=verifiers) if verifiers else roles,
        }


def migrate_placeholder(settings: Settings, network: str, source: str = PLACEHOLDER_NETWORK) -> int:
    """
    Move records deployed under the placeholder bucket to a real network.

    Args:
        settings: Runtime settings
        network: Target network name
        source: Placeholder bucket name

    Returns:
        Number of files moved
    """
    descriptor = resolve_network(network, settings.env)
    return DeploymentRecordStore(settings.deployments_dir).migrate(source, descriptor.name)


def generate_frontend_artifacts(settings: Settings, network: str) -> SyncReport:
    """
    Regenerate every frontend artifact of a network from the record store.

    Args:
        settings: Runtime settings
        network: Network name

    Returns:
        SyncReport of the synchronization
    """
    descriptor = resolve_network(network, settings.env)
    store = DeploymentRecordStore(settings.deployments_dir)
    synchronizer = FrontendConfigSynchronizer(store, settings.frontend, settings.env_prefix)
    return synchronizer.sync(descriptor)


def verify_network(
    settings: Settings,
    network: str,
    contract_names: Optional[Iterable[str]] = None,
    verifier: Optional[VerificationAgent] = None,
) -> List[VerificationResult]:
    """
    Verify the stored contracts of a network on its block explorer.

    Args:
        settings: Runtime settings
        network: Network name
        contract_names: Contracts to verify (defaults to every record)
        verifier: Verification agent (built from the network if None)

    Returns:
        One result per verified contract
    """
    descriptor = resolve_network(network, settings.env)
    store = DeploymentRecordStore(settings.deployments_dir)
    if verifier is None:
        verifier = VerificationAgent(descriptor, ArtifactLoader(settings.artifacts_dir))

    if contract_names is None:
        records = store.list(descriptor.name)
    else:
        records = [store.get(descriptor.name, name) for name in contract_names]
    return verifier.verify_all(records)


def deploy_to_network(
    settings: Settings,
    network: str,
    only: Optional[Iterable[str]] = None,
    verify: bool = True,
    sync: bool = True,
    password: Optional[str] = None,
    signer: Optional[LocalAccount] = None,
    rpc: Optional[RpcClient] = None,
    verifier: Optional[VerificationAgent] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> PipelineResult:
    """
    Deploy the ARANDU ecosystem to a network and publish it to the frontend.

    Steps, in order: resolve the network, load the deployer key, move
    placeholder records into the network's bucket, deploy the contract DAG,
    verify newly deployed contracts on live networks, and synchronize the
    frontend artifacts.

    Args:
        settings: Runtime settings
        network: Network name (case-insensitive)
        only: Contract names to deploy; the rest are read from the store
        verify: Run block explorer verification
        sync: Write frontend artifacts
        password: Keystore password for an encrypted deployer key
        signer: Deployer account (loaded from settings if None)
        rpc: JSON-RPC client (built from the network if None)
        verifier: Verification agent (built from the network if None)
        sleep: Sleep function used while polling

    Returns:
        PipelineResult with the deployment run and the follow-up reports

    Raises:
        UnknownNetworkError: If the network is not configured
        MissingCredentialError: If the deployer key or an RPC API key is missing
        DeploymentRevertedError: If a deployment transaction reverts
        ConfirmationTimeoutError: If a receipt does not arrive in time
    """
    descriptor: NetworkDescriptor = resolve_network(network, settings.env)
    if signer is None:
        signer = load_signer(settings, password)

    logger.info("Deploying ARANDU ecosystem to %s (chain %d)", descriptor.name, descriptor.chain_id)
    logger.info("Deployer: %s", signer.address)

    store = DeploymentRecordStore(settings.deployments_dir)
    migrated = 0
    if store.has_network(PLACEHOLDER_NETWORK):
        migrated = store.migrate(PLACEHOLDER_NETWORK, descriptor.name)

    artifacts = ArtifactLoader(settings.artifacts_dir)
    deployer = ContractDeployer(
        descriptor,
        rpc or RpcClient(descriptor.rpc_url),
        signer,
        artifacts,
        store,
        receipt_timeout=settings.receipt_timeout,
        poll_interval=settings.poll_interval,
        sleep=sleep,
    )
    run = deployer.deploy(arandu_ecosystem(), only=only)
    result = PipelineResult(run=run, migrated=migrated)

    if verify:
        if verifier is None:
            verifier = VerificationAgent(descriptor, artifacts, sleep=sleep)
        result.verification = verifier.verify_all([run.records[name] for name in run.deployed])

    if sync:
        synchronizer = FrontendConfigSynchronizer(store, settings.frontend, settings.env_prefix)
        result.sync = synchronizer.sync(descriptor)

    return result
