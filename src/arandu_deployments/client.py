"""Demo frontend client for arandu-deployments library.

Python rendition of the ARANDU demo UI: a lazily connected session that
reads contract addresses from the frontend config source, ABIs from the
ABI bundle, and performs owner actions with an optional frontend signer.
"""

import json
import logging
import os
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional, Protocol

from eth_account import Account
from eth_account.signers.local import LocalAccount

from .abi import decode_function_result, encode_function_call
from .config import Settings
from .constants import CERTIFICATES, ENCRYPTED_ERC, REGISTRAR, ROLE_CONTRACTS
from .exceptions import BlockedActionError, DeploymentError
from .rpc import RpcClient
from .synchronizer import read_config_block
from .transactions import send_transaction, wait_for_receipt
from .types import NetworkDescriptor

logger = logging.getLogger(__name__)

MAX_LOG_ENTRIES = 10
DEFAULT_CERTIFICATE_URI = "https://arandu.example.com/certificates/{timestamp}"

_LOG_LEVELS = {"warning": logging.WARNING, "error": logging.ERROR}


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class AccessMode(Enum):
    READ_ONLY = "read_only"
    READ_WRITE = "read_write"


@dataclass
class LogEntry:
    """One line of the session activity log."""

    level: str  # "info", "success", "warning" or "error"
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ProofProvider(Protocol):
    """
    Source of zero-knowledge payloads for registrar and token calls.

    A real implementation wraps an eERC proving SDK; DemoProofProvider is the
    placeholder used when none is installed.
    """

    name: str
    available: bool

    def registration_payload(self, address: str) -> List[Any]:
        ...

    def mint_arguments(self, recipient: str, amount: int) -> List[Any]:
        ...

    def transfer_arguments(self, sender: str, recipient: str, amount: int) -> List[Any]:
        ...

    def decryption_key(self, private_key: str, address: str) -> str:
        ...


class DemoProofProvider:
    """Placeholder payloads with no cryptographic meaning."""

    name = "demo"
    available = False

    def registration_payload(self, address: str) -> List[Any]:
        return [os.urandom(64)]

    def mint_arguments(self, recipient: str, amount: int) -> List[Any]:
        return [recipient, amount]

    def transfer_arguments(self, sender: str, recipient: str, amount: int) -> List[Any]:
        return [recipient, amount]

    def decryption_key(self, private_key: str, address: str) -> str:
        return f"demo-dek-{address}"


class ContractHandle:
    """A deployed contract bound to an RPC endpoint and an optional signer."""

    def __init__(
        self,
        name: str,
        address: str,
        abi: List[Dict[str, Any]],
        rpc: RpcClient,
        network: NetworkDescriptor,
        signer: Optional[LocalAccount] = None,
        receipt_timeout: float = 300.0,
        poll_interval: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.name = name
        self.address = address
        self.abi = abi
        self.rpc = rpc
        self.network = network
        self.signer = signer
        self.receipt_timeout = receipt_timeout
        self.poll_interval = poll_interval
        self._sleep = sleep

    def call(self, function: str, *args: Any) -> Any:
        """Run a read-only call and decode its result."""
        data = encode_function_call(self.abi, function, list(args))
        result = self.rpc.eth_call({"to": self.address, "data": data})
        return decode_function_result(self.abi, function, result)

    def transact(self, function: str, *args: Any) -> Dict[str, Any]:
        """
        Send a state-changing call and wait for its receipt.

        Raises:
            BlockedActionError: If the handle has no signer
            DeploymentRevertedError: If the transaction reverts
            ConfirmationTimeoutError: If the receipt does not arrive in time
        """
        if self.signer is None:
            raise BlockedActionError(f"{self.name}.{function} needs a signer")

        data = encode_function_call(self.abi, function, list(args))
        tx_hash = send_transaction(
            self.rpc,
            self.signer,
            chain_id=self.network.chain_id,
            data=data,
            to=self.address,
        )
        return wait_for_receipt(
            self.rpc,
            tx_hash,
            confirmations=self.network.confirmations,
            timeout=self.receipt_timeout,
            poll_interval=self.poll_interval,
            sleep=self._sleep,
        )


class DemoSession:
    """
    Lazily connected client session for one network.

    The first action connects: contract addresses come from the network's
    block in the frontend config source and ABIs from the ABI bundle. With
    a frontend private key the session is read-write, otherwise read-only
    and every mutating action is blocked with a warning.
    """

    def __init__(
        self,
        settings: Settings,
        network: NetworkDescriptor,
        rpc_factory: Callable[[str], RpcClient] = RpcClient,
        proof_provider: Optional[ProofProvider] = None,
        signer: Optional[LocalAccount] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self.network = network
        self.proof_provider = proof_provider or DemoProofProvider()
        self._rpc_factory = rpc_factory
        self._explicit_signer = signer
        self._sleep = sleep
        self._busy = threading.Lock()

        self.state = ConnectionState.DISCONNECTED
        self.mode: Optional[AccessMode] = None
        self.signer: Optional[LocalAccount] = None
        self.contracts: Dict[str, ContractHandle] = {}
        self.logs: Deque[LogEntry] = deque(maxlen=MAX_LOG_ENTRIES)

        if not self.proof_provider.available:
            logger.info("Using %s proof provider; payloads are placeholders", self.proof_provider.name)

    @property
    def loading(self) -> bool:
        return self._busy.locked()

    @property
    def address(self) -> Optional[str]:
        return self.signer.address if self.signer else None

    def log(self, level: str, message: str) -> LogEntry:
        entry = LogEntry(level=level, message=message)
        self.logs.append(entry)
        logger.log(_LOG_LEVELS.get(level, logging.INFO), message)
        return entry

    # ------------------------------------------------------------------
    # Connection state machine
    # ------------------------------------------------------------------

    def connect(self) -> bool:
        """
        Connect to the network's RPC endpoint and bind contract handles.

        Returns:
            True when connected; False (with an error log entry) otherwise
        """
        if self.state == ConnectionState.CONNECTED:
            return True

        self.state = ConnectionState.CONNECTING
        self.log("info", f"Connecting to {self.network.name}...")
        try:
            block = self._load_config_block()
            rpc_url = block.get("rpcUrl") or self.network.rpc_url
            rpc = self._rpc_factory(rpc_url)
            signer = self._load_signer()
            self.contracts = self._bind_contracts(block, rpc, signer)
        except (DeploymentError, OSError, KeyError, ValueError) as e:
            self.state = ConnectionState.DISCONNECTED
            self.contracts = {}
            self.log("error", f"Connection failed: {e}")
            return False

        self.signer = signer
        self.mode = AccessMode.READ_WRITE if signer else AccessMode.READ_ONLY
        self.state = ConnectionState.CONNECTED
        if signer:
            short = f"{signer.address[:6]}...{signer.address[-4:]}"
            self.log("success", f"Frontend signer configured: {short}")
        self.log("success", f"Connected to {self.network.name} ({self.mode.value})")
        return True

    def disconnect(self) -> None:
        self.state = ConnectionState.DISCONNECTED
        self.mode = None
        self.signer = None
        self.contracts = {}

    def switch_network(self, network: NetworkDescriptor) -> None:
        """Drop the connection; the next action connects to the new network."""
        self.disconnect()
        self.network = network
        self.log("info", f"Switched to {network.name}")

    def _load_config_block(self) -> Dict[str, Any]:
        path = self.settings.frontend.config_file
        block = read_config_block(path.read_text(encoding="utf-8"), self.network.label)
        if block is None:
            raise ValueError(f"No {self.network.label} entry in {path}")
        return block

    def _load_signer(self) -> Optional[LocalAccount]:
        if self._explicit_signer is not None:
            return self._explicit_signer
        if self.settings.frontend_private_key:
            return Account.from_key(self.settings.frontend_private_key)
        return None

    def _bind_contracts(
        self, block: Dict[str, Any], rpc: RpcClient, signer: Optional[LocalAccount]
    ) -> Dict[str, ContractHandle]:
        handles = {}
        for role, contract_name in ROLE_CONTRACTS.items():
            address = block.get(role)
            if not address:
                continue
            abi_path = self.settings.frontend.abis_dir / f"{contract_name}.json"
            with open(abi_path) as f:
                abi = json.load(f)["abi"]
            handles[contract_name] = ContractHandle(
                contract_name,
                address,
                abi,
                rpc,
                self.network,
                signer=signer,
                receipt_timeout=self.settings.receipt_timeout,
                poll_interval=self.settings.poll_interval,
                sleep=self._sleep,
            )
        return handles

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _run(self, description: str, action: Callable[[], Any], mutating: bool = False) -> Any:
        if not self._busy.acquire(blocking=False):
            self.log("warning", f"{description} ignored: another action is in progress")
            return None
        try:
            if not self.connect():
                return None
            if mutating and self.signer is None:
                self.log("warning", f"{description} blocked: no signer configured in the frontend")
                return None
            return action()
        except BlockedActionError as e:
            self.log("warning", f"{description} blocked: {e}")
        except (DeploymentError, KeyError, ValueError) as e:
            self.log("error", f"{description} failed: {e}")
        finally:
            self._busy.release()
        return None

    def _contract(self, contract_name: str) -> ContractHandle:
        if contract_name not in self.contracts:
            raise KeyError(f"{contract_name} is not configured for {self.network.name}")
        return self.contracts[contract_name]

    def _transact(self, contract_name: str, function: str, args: List[Any]) -> Dict[str, Any]:
        receipt = self._contract(contract_name).transact(function, *args)
        self.log(
            "success",
            f"{function} transaction {receipt.get('transactionHash')} "
            f"confirmed in block {receipt.get('blockNumber')}",
        )
        return receipt

    def is_user_registered(self, address: Optional[str] = None) -> Optional[bool]:
        def action():
            user = address or self.address
            if not user:
                self.log("info", "No address to check")
                return None
            registered = bool(self._contract(REGISTRAR).call("isUserRegistered", user))
            if registered:
                self.log("success", f"{user} is registered")
            else:
                self.log("warning", f"{user} is not registered")
            return registered

        return self._run("Registration check", action)

    def register(self, address: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Register a public key (the signer's by default) with the Registrar."""

        def action():
            payload = self.proof_provider.registration_payload(address or self.address)
            return self._transact(REGISTRAR, "register", payload)

        return self._run("Registration", action, mutating=True)

    def issue_certificate(
        self, recipient: str, achievement_name: str, token_uri: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """Issue a certificate NFT."""

        def action():
            if not recipient or not achievement_name:
                self.log("warning", "Recipient and achievement name are required")
                return None
            uri = token_uri or DEFAULT_CERTIFICATE_URI.format(timestamp=int(time.time() * 1000))
            self.log("info", f'Issuing certificate "{achievement_name}" to {recipient}...')
            return self._transact(CERTIFICATES, "issueCertificate", [recipient, achievement_name, uri])

        return self._run("Certificate issuance", action, mutating=True)

    def private_mint(self, recipient: str, amount: int) -> Optional[Dict[str, Any]]:
        def action():
            args = self.proof_provider.mint_arguments(recipient, amount)
            return self._transact(ENCRYPTED_ERC, "privateMint", args)

        return self._run("Private mint", action, mutating=True)

    def transfer(self, recipient: str, amount: int) -> Optional[Dict[str, Any]]:
        def action():
            args = self.proof_provider.transfer_arguments(self.address, recipient, amount)
            return self._transact(ENCRYPTED_ERC, "transfer", args)

        return self._run("Transfer", action, mutating=True)

    def contract_info(self) -> Optional[Dict[str, Dict[str, str]]]:
        """Name and symbol of the certificate registry and the token."""

        def action():
            info = {}
            for contract_name in (CERTIFICATES, ENCRYPTED_ERC):
                handle = self.contracts.get(contract_name)
                if handle is None:
                    continue
                name = handle.call("name")
                symbol = handle.call("symbol")
                info[contract_name] = {"name": name, "symbol": symbol}
                self.log("info", f"{contract_name}: {name} ({symbol})")
            return info

        return self._run("Contract info", action)

