"""Contract deployment for arandu-deployments library."""

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set

from eth_account.signers.local import LocalAccount
from eth_utils import encode_hex, to_checksum_address

from .abi import encode_constructor_args
from .artifacts import ArtifactLoader, link_bytecode
from .ecosystem import topological_order
from .exceptions import DeploymentError, DeploymentRevertedError, RpcError
from .rpc import RpcClient
from .store import DeploymentRecordStore
from .transactions import send_transaction, wait_for_receipt
from .types import (
    AddressOf,
    ContractDeploymentSpec,
    DeployerAddress,
    DeploymentRecord,
    DeploymentRun,
    NetworkDescriptor,
)

logger = logging.getLogger(__name__)


class ContractDeployer:
    """
    Deploys a DAG of contract specs to one network.

    Each confirmed deployment is written to the record store before the next
    node starts, so a failed run keeps the records of every node that
    completed.
    """

    def __init__(
        self,
        network: NetworkDescriptor,
        rpc: RpcClient,
        signer: LocalAccount,
        artifacts: ArtifactLoader,
        store: DeploymentRecordStore,
        receipt_timeout: float = 300.0,
        poll_interval: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.network = network
        self.rpc = rpc
        self.signer = signer
        self.artifacts = artifacts
        self.store = store
        self.receipt_timeout = receipt_timeout
        self.poll_interval = poll_interval
        self._sleep = sleep

    def deploy(
        self,
        specs: Sequence[ContractDeploymentSpec],
        only: Optional[Iterable[str]] = None,
    ) -> DeploymentRun:
        """
        Deploy specs in dependency order.

        Args:
            specs: Deployment specs in declaration order
            only: Contract names to deploy; other nodes are loaded from the
                  record store. None deploys everything.

        Returns:
            DeploymentRun listing deployed and reused contracts

        Raises:
            DeploymentError: On invalid graphs or unknown names in `only`
            RecordNotFoundError: If a skipped node has no stored record
            DeploymentRevertedError: If a deployment transaction reverts
            ConfirmationTimeoutError: If a receipt does not arrive in time
        """
        ordered = topological_order(specs)

        selected: Optional[Set[str]] = None
        if only is not None:
            selected = set(only)
            declared = {spec.contract_name for spec in specs}
            unknown = sorted(selected - declared)
            if unknown:
                raise DeploymentError(f"Unknown contracts requested: {', '.join(unknown)}")

        self._check_chain_id()

        run = DeploymentRun(network=self.network.name)
        for spec in ordered:
            name = spec.contract_name
            explicitly_selected = selected is not None and name in selected

            if selected is not None and not explicitly_selected:
                run.records[name] = self.store.get(self.network.name, name)
                run.reused.append(name)
                logger.info("Using existing %s at %s", name, run.records[name].address)
                continue

            if spec.reuse_existing and not explicitly_selected and self.store.has(
                self.network.name, name
            ):
                run.records[name] = self.store.get(self.network.name, name)
                run.reused.append(name)
                logger.info("%s already deployed at %s, reusing", name, run.records[name].address)
                continue

            record = self._deploy_one(spec, run.records)
            self.store.put(self.network.name, name, record)
            run.records[name] = record
            run.deployed.append(name)

        logger.info(
            "Deployment to %s finished: %d deployed, %d reused",
            self.network.name,
            len(run.deployed),
            len(run.reused),
        )
        return run

    def _check_chain_id(self) -> None:
        try:
            chain_id = self.rpc.chain_id()
        except RpcError as e:
            logger.warning("Could not read chain id from %s: %s", self.network.rpc_url, e)
            return
        if chain_id != self.network.chain_id:
            logger.warning(
                "RPC endpoint reports chain id %d but network %s expects %d",
                chain_id,
                self.network.name,
                self.network.chain_id,
            )

    def resolve_args(self, value: Any, records: Dict[str, DeploymentRecord]) -> Any:
        """
        Replace AddressOf and DEPLOYER markers with concrete addresses.

        Dicts and lists are resolved recursively.
        """
        if isinstance(value, AddressOf):
            if value.contract_name not in records:
                raise DeploymentError(
                    f"No address for {value.contract_name}; it must be deployed first"
                )
            return records[value.contract_name].address
        if isinstance(value, DeployerAddress):
            return self.signer.address
        if isinstance(value, dict):
            return {k: self.resolve_args(v, records) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self.resolve_args(v, records) for v in value]
        return value

    def _deploy_one(
        self, spec: ContractDeploymentSpec, records: Dict[str, DeploymentRecord]
    ) -> DeploymentRecord:
        name = spec.contract_name
        contract = self.artifacts.load(name)

        libraries = {
            library: records[target].address for library, target in spec.libraries.items()
        }
        bytecode = link_bytecode(contract, libraries)

        args: List[Any] = self.resolve_args(spec.args, records)
        try:
            encoded_args = encode_constructor_args(contract.abi, args)
        except (ValueError, TypeError) as e:
            raise DeploymentError(f"Cannot encode constructor arguments of {name}: {e}") from e

        init_code = bytecode + encode_hex(encoded_args)[2:]

        logger.info("Deploying %s to %s...", name, self.network.name)
        try:
            tx_hash = send_transaction(
                self.rpc,
                self.signer,
                chain_id=self.network.chain_id,
                data=init_code,
                gas_price=self.network.gas_price,
                gas_limit=self.network.gas_limit,
            )
            receipt = wait_for_receipt(
                self.rpc,
                tx_hash,
                confirmations=self.network.confirmations,
                timeout=self.receipt_timeout,
                poll_interval=self.poll_interval,
                sleep=self._sleep,
            )
        except DeploymentError as e:
            logger.error("Deployment of %s on %s failed: %s", name, self.network.name, e)
            raise

        contract_address = receipt.get("contractAddress")
        if not contract_address:
            raise DeploymentRevertedError(
                f"Receipt of {name} deployment ({tx_hash}) has no contract address"
            )

        record = DeploymentRecord(
            contract_name=name,
            address=to_checksum_address(contract_address),
            abi=contract.abi,
            transaction_hash=tx_hash,
            block_number=receipt.get("blockNumber"),
            block_hash=receipt.get("blockHash"),
            deployer=self.signer.address,
            args=args,
            libraries=libraries or None,
        )
        logger.info("%s deployed at %s", name, record.address)
        return record
