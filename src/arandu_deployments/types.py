"""Data types and dataclasses for arandu-deployments library."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class NetworkDescriptor:
    """Static description of a target network."""

    name: str  # Lowercase key, e.g. "fuji"
    label: str  # Frontend key, e.g. "FUJI"
    chain_id: int
    chain_name: str
    rpc_url: str
    explorer_url: str
    currency_symbol: str
    currency_name: str = "Ether"
    live: bool = False
    confirmations: int = 1

    # Block explorer verification API (Etherscan-compatible)
    explorer_api_url: Optional[str] = None
    explorer_api_key: Optional[str] = None

    # Transaction overrides; None means ask the node
    gas_price: Optional[int] = None
    gas_limit: Optional[int] = None

    # rpc_url embeds an API key and must not be published
    rpc_url_private: bool = False

    def address_url(self, address: str) -> str:
        """Block explorer URL for an address."""
        return f"{self.explorer_url}/address/{address}"


@dataclass(frozen=True)
class AddressOf:
    """Constructor argument resolved to the address of another deployed spec."""

    contract_name: str


@dataclass(frozen=True)
class DeployerAddress:
    """Constructor argument resolved to the signer's address."""


DEPLOYER = DeployerAddress()


@dataclass
class ContractDeploymentSpec:
    """One node of the deployment DAG."""

    contract_name: str
    # Literals, AddressOf references, DEPLOYER, or dict/list nestings of those
    args: List[Any] = field(default_factory=list)
    # Library name (as linked in bytecode) -> contract spec name
    libraries: Dict[str, str] = field(default_factory=dict)
    # Keep an existing record instead of redeploying
    reuse_existing: bool = False


@dataclass
class CompiledContract:
    """Compiled contract artifact (Hardhat artifact format)."""

    contract_name: str
    source_name: str  # e.g. "contracts/Registrar.sol"
    abi: List[Dict[str, Any]]
    bytecode: str  # 0x-prefixed, may contain library placeholders
    # source file -> library name -> [{"start": int, "length": int}]
    link_references: Dict[str, Dict[str, List[Dict[str, int]]]] = field(default_factory=dict)

    @property
    def fully_qualified_name(self) -> str:
        return f"{self.source_name}:{self.contract_name}"


@dataclass
class DeploymentRecord:
    """Address and ABI of a contract deployed to one network."""

    # Required fields
    contract_name: str
    address: str  # Checksummed address
    abi: List[Dict[str, Any]]  # Full contract ABI

    # Optional fields (transaction and block metadata)
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None
    block_hash: Optional[str] = None
    deployer: Optional[str] = None
    args: Optional[List[Any]] = None  # Resolved constructor arguments
    libraries: Optional[Dict[str, str]] = None  # Library name -> address

    def to_json(self) -> Dict[str, Any]:
        """Serialize using the on-disk key names."""
        data: Dict[str, Any] = {
            "contractName": self.contract_name,
            "address": self.address,
            "abi": self.abi,
        }
        if self.transaction_hash is not None:
            data["transactionHash"] = self.transaction_hash
        if self.block_number is not None:
            data["blockNumber"] = self.block_number
        if self.block_hash is not None:
            data["blockHash"] = self.block_hash
        if self.deployer is not None:
            data["deployer"] = self.deployer
        if self.args is not None:
            data["args"] = self.args
        if self.libraries:
            data["libraries"] = self.libraries
        return data


@dataclass(frozen=True)
class FrontendConfigSnapshot:
    """Address-by-role view of one network's deployment records."""

    network: str
    label: str
    chain_id: int
    # None when the endpoint carries credentials
    rpc_url: Optional[str]
    # Role -> address, with a nested "VERIFIERS" mapping
    contracts: Dict[str, Any] = field(default_factory=dict)

    def flat_roles(self) -> Dict[str, str]:
        """
        Flatten roles for environment variables.

        Nested verifier roles become VERIFIER_<KIND>.
        """
        flat: Dict[str, str] = {}
        for role, value in self.contracts.items():
            if isinstance(value, dict):
                for kind, address in value.items():
                    flat[f"VERIFIER_{kind}"] = address
            else:
                flat[role] = value
        return flat


@dataclass
class DeploymentRun:
    """Outcome of one deployer run."""

    network: str
    deployed: List[str] = field(default_factory=list)
    reused: List[str] = field(default_factory=list)
    records: Dict[str, DeploymentRecord] = field(default_factory=dict)


@dataclass
class SyncReport:
    """Outcome of one synchronization run."""

    network: str
    snapshot: Optional[FrontendConfigSnapshot] = None
    written: List[str] = field(default_factory=list)  # Paths written
    failures: Dict[str, str] = field(default_factory=dict)  # Artifact kind -> message

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass
class VerificationResult:
    """Outcome of verifying one contract."""

    contract_name: str
    address: str
    verified: bool
    message: str = ""


@dataclass
class PipelineResult:
    """Outcome of a full deploy, verify and sync pipeline."""

    run: DeploymentRun
    migrated: int = 0  # Files moved out of the placeholder bucket
    verification: List[VerificationResult] = field(default_factory=list)
    sync: Optional[SyncReport] = None
