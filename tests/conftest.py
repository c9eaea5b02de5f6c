"""Shared pytest fixtures for arandu-deployments tests."""

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
from eth_account import Account
from eth_utils import encode_hex, keccak, to_checksum_address

from arandu_deployments.config import Settings
from arandu_deployments.constants import (
    BABY_JUBJUB,
    BURN_VERIFIER,
    CERTIFICATES,
    ENCRYPTED_ERC,
    MINT_VERIFIER,
    REGISTRAR,
    REGISTRATION_VERIFIER,
    TRANSFER_VERIFIER,
    WITHDRAW_VERIFIER,
)
from arandu_deployments.paths import FrontendPaths
from arandu_deployments.store import DeploymentRecordStore
from arandu_deployments.types import DeploymentRecord, NetworkDescriptor

# Hardhat's first default account
DEPLOYER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
DEPLOYER_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

LIBRARY_PLACEHOLDER = "__$" + "a" * 34 + "$__"

VERIFIER_ABI = [
    {
        "type": "function",
        "name": "verifyProof",
        "stateMutability": "view",
        "inputs": [{"name": "proof", "type": "bytes"}],
        "outputs": [{"name": "", "type": "bool"}],
    }
]

REGISTRAR_ABI = [
    {
        "type": "constructor",
        "inputs": [{"name": "_registrationVerifier", "type": "address"}],
    },
    {
        "type": "function",
        "name": "register",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "publicKey", "type": "bytes"}],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "isUserRegistered",
        "stateMutability": "view",
        "inputs": [{"name": "user", "type": "address"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
]

ENCRYPTED_ERC_ABI = [
    {
        "type": "constructor",
        "inputs": [
            {
                "name": "params",
                "type": "tuple",
                "components": [
                    {"name": "registrar", "type": "address"},
                    {"name": "isConverter", "type": "bool"},
                    {"name": "name", "type": "string"},
                    {"name": "symbol", "type": "string"},
                    {"name": "decimals", "type": "uint8"},
                    {"name": "mintVerifier", "type": "address"},
                    {"name": "withdrawVerifier", "type": "address"},
                    {"name": "transferVerifier", "type": "address"},
                    {"name": "burnVerifier", "type": "address"},
                ],
            }
        ],
    },
    {
        "type": "function",
        "name": "name",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
    {
        "type": "function",
        "name": "symbol",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
    {
        "type": "function",
        "name": "privateMint",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "user", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "transfer",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [],
    },
]

CERTIFICATE_ABI = [
    {
        "type": "constructor",
        "inputs": [{"name": "initialOwner", "type": "address"}],
    },
    {
        "type": "function",
        "name": "name",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
    {
        "type": "function",
        "name": "symbol",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
    {
        "type": "function",
        "name": "issueCertificate",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "achievementName", "type": "string"},
            {"name": "tokenURI", "type": "string"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

# contract name -> (source file, abi)
CONTRACT_SOURCES: Dict[str, Any] = {
    REGISTRATION_VERIFIER: ("contracts/verifiers/RegistrationVerifier.sol", VERIFIER_ABI),
    MINT_VERIFIER: ("contracts/verifiers/MintVerifier.sol", VERIFIER_ABI),
    TRANSFER_VERIFIER: ("contracts/verifiers/TransferVerifier.sol", VERIFIER_ABI),
    BURN_VERIFIER: ("contracts/verifiers/BurnVerifier.sol", VERIFIER_ABI),
    WITHDRAW_VERIFIER: ("contracts/verifiers/WithdrawVerifier.sol", VERIFIER_ABI),
    REGISTRAR: ("contracts/Registrar.sol", REGISTRAR_ABI),
    BABY_JUBJUB: ("contracts/libraries/BabyJubJub.sol", []),
    ENCRYPTED_ERC: ("contracts/EncryptedERC.sol", ENCRYPTED_ERC_ABI),
    CERTIFICATES: ("contracts/AranduCertificate.sol", CERTIFICATE_ABI),
}


def write_artifact(
    artifacts_dir: Path,
    contract_name: str,
    source_name: str,
    abi: List[Dict[str, Any]],
    bytecode: str = "0x6080604052",
    link_references: Optional[Dict[str, Any]] = None,
) -> Path:
    """Write a Hardhat-style artifact plus its debug file and build info."""
    artifact_dir = artifacts_dir / source_name
    artifact_dir.mkdir(parents=True, exist_ok=True)

    artifact_path = artifact_dir / f"{contract_name}.json"
    artifact_path.write_text(
        json.dumps(
            {
                "_format": "hh-sol-artifact-1",
                "contractName": contract_name,
                "sourceName": source_name,
                "abi": abi,
                "bytecode": bytecode,
                "deployedBytecode": "0x6080",
                "linkReferences": link_references or {},
                "deployedLinkReferences": {},
            }
        )
    )

    build_info_dir = artifacts_dir / "build-info"
    build_info_dir.mkdir(parents=True, exist_ok=True)
    build_info_path = build_info_dir / "abc123.json"
    if not build_info_path.exists():
        build_info_path.write_text(
            json.dumps(
                {
                    "solcVersion": "0.8.27",
                    "solcLongVersion": "0.8.27+commit.40a35a09",
                    "input": {
                        "language": "Solidity",
                        "sources": {"contracts/Registrar.sol": {"content": "contract Registrar {}"}},
                        "settings": {"optimizer": {"enabled": True, "runs": 200}},
                    },
                }
            )
        )

    depth = len(Path(source_name).parts)
    relative = "/".join([".."] * depth) + "/build-info/abc123.json"
    (artifact_dir / f"{contract_name}.dbg.json").write_text(
        json.dumps({"_format": "hh-sol-dbg-1", "buildInfo": relative})
    )
    return artifact_path


@pytest.fixture
def artifacts_dir(tmp_path: Path) -> Path:
    """Compiled artifacts for the whole ecosystem."""
    root = tmp_path / "artifacts"
    for name, (source, abi) in CONTRACT_SOURCES.items():
        if name == ENCRYPTED_ERC:
            write_artifact(
                root,
                name,
                source,
                abi,
                bytecode="0x6080" + LIBRARY_PLACEHOLDER + "00",
                link_references={
                    "contracts/libraries/BabyJubJub.sol": {
                        "BabyJubJub": [{"start": 2, "length": 20}]
                    }
                },
            )
        else:
            write_artifact(root, name, source, abi)
    return root


@pytest.fixture
def deployments_dir(tmp_path: Path) -> Path:
    return tmp_path / "deployments"


@pytest.fixture
def store(deployments_dir: Path) -> DeploymentRecordStore:
    return DeploymentRecordStore(deployments_dir)


@pytest.fixture
def frontend_paths(tmp_path: Path) -> FrontendPaths:
    return FrontendPaths(root=tmp_path / "frontend")


@pytest.fixture
def settings(
    tmp_path: Path, deployments_dir: Path, artifacts_dir: Path, frontend_paths: FrontendPaths
) -> Settings:
    """Settings pointing every directory into tmp_path, keyed with the deployer."""
    return Settings(
        deployments_dir=deployments_dir,
        artifacts_dir=artifacts_dir,
        frontend=frontend_paths,
        private_key=DEPLOYER_KEY,
        receipt_timeout=5.0,
        poll_interval=0.0,
    )


@pytest.fixture
def deployer_account():
    return Account.from_key(DEPLOYER_KEY)


@pytest.fixture
def localhost() -> NetworkDescriptor:
    return NetworkDescriptor(
        name="localhost",
        label="LOCALHOST",
        chain_id=31337,
        chain_name="Localhost",
        rpc_url="http://127.0.0.1:8545",
        explorer_url="http://localhost:8545",
        currency_symbol="ETH",
    )


@pytest.fixture
def fuji() -> NetworkDescriptor:
    return NetworkDescriptor(
        name="fuji",
        label="FUJI",
        chain_id=43113,
        chain_name="Avalanche Fuji",
        rpc_url="https://api.avax-test.network/ext/bc/C/rpc",
        explorer_url="https://testnet.snowtrace.io",
        currency_symbol="AVAX",
        currency_name="Avalanche",
        live=True,
        confirmations=3,
        explorer_api_url="https://api-testnet.snowtrace.io/api",
        explorer_api_key="snowtrace-key",
    )


def make_record(name: str, index: int, abi: Optional[List[Dict[str, Any]]] = None) -> DeploymentRecord:
    """A record with a deterministic address."""
    return DeploymentRecord(
        contract_name=name,
        address=to_checksum_address(f"0x{index:040x}"),
        abi=abi if abi is not None else CONTRACT_SOURCES.get(name, ("", VERIFIER_ABI))[1],
        transaction_hash="0x" + f"{index:064x}",
        block_number=index,
    )


@pytest.fixture
def populated_store(store: DeploymentRecordStore) -> DeploymentRecordStore:
    """Store holding a full localhost deployment."""
    for index, name in enumerate(CONTRACT_SOURCES, start=1):
        store.put("localhost", name, make_record(name, index))
    return store


class FakeChain:
    """
    In-memory stand-in for RpcClient.

    Every raw transaction mines immediately into a new block and the chain
    grows by one block per eth_blockNumber poll. Contract creations get
    sequential addresses.
    """

    def __init__(self, chain_id: int = 31337, revert_at: Optional[int] = None):
        self._chain_id = chain_id
        self.revert_at = revert_at  # 1-based index of the transaction that reverts
        self.block = 100
        self.nonce = 0
        self.sent: List[str] = []
        self.estimates: List[Dict[str, Any]] = []
        self.receipts: Dict[str, Dict[str, Any]] = {}
        self.call_results: Dict[str, str] = {}
        self.balances: Dict[str, int] = {}
        self.on_send: Optional[Callable[[int], None]] = None

    def chain_id(self) -> int:
        return self._chain_id

    def block_number(self) -> int:
        # Each poll observes one more block
        current = self.block
        self.block += 1
        return current

    def get_balance(self, address: str) -> int:
        return self.balances.get(address, 0)

    def get_transaction_count(self, address: str) -> int:
        return self.nonce

    def gas_price(self) -> int:
        return 1_000_000_000

    def estimate_gas(self, tx: Dict[str, Any]) -> int:
        self.estimates.append(tx)
        return 100_000

    def eth_call(self, tx: Dict[str, Any]) -> str:
        return self.call_results[tx["data"][:10]]

    def send_raw_transaction(self, raw_tx: str) -> str:
        self.sent.append(raw_tx)
        index = len(self.sent)
        if self.on_send is not None:
            self.on_send(index)

        tx_hash = encode_hex(keccak(hexstr=raw_tx))
        self.block += 1
        self.nonce += 1
        is_creation = "to" not in self.estimates[-1] if self.estimates else True
        self.receipts[tx_hash] = {
            "transactionHash": tx_hash,
            "blockNumber": self.block,
            "blockHash": "0x" + f"{self.block:064x}",
            "status": 0 if index == self.revert_at else 1,
            "contractAddress": to_checksum_address(f"0x{0xC0DE0000 + index:040x}")
            if is_creation
            else None,
        }
        return tx_hash

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return self.receipts.get(tx_hash)


@pytest.fixture
def fake_chain() -> FakeChain:
    return FakeChain()


LOCALHOST_CONFIG = """/**
 * ARANDU ecosystem configuration
 */

export const NETWORKS = {
    // Local Hardhat node
    LOCALHOST: {
        name: 'Localhost',
        rpcUrl: 'http://localhost:8545',
        CERTIFICATES: "0x1613beB3B2C4f22Ee086B2b38C1476A3cE7f78E8",
    },

    FUJI: {
        name: 'Fuji',
        rpcUrl: 'https://api.avax-test.network/ext/bc/C/rpc',
        CERTIFICATES: "0xfEaD59A75657C23f5e688039a577439635695159",
        VERIFIERS: {
            MINT: "0x44e1b530a8F1288938927a41c085cd1c401462e7"
        }
    }
};

export const OWNER_CONFIG = {
    LOCALHOST: {
        address: "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
    }
};
"""


@pytest.fixture
def config_source(frontend_paths: FrontendPaths) -> Path:
    """Frontend config source with LOCALHOST and FUJI blocks."""
    path = frontend_paths.config_file
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(LOCALHOST_CONFIG)
    return path


@pytest.fixture
def record_factory() -> Callable[..., DeploymentRecord]:
    return make_record
