"""Deployer and test wallet management for arandu-deployments library."""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from dotenv import set_key
from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import encode_hex, from_wei

from .client import DemoSession
from .config import Settings
from .constants import DECRYPTION_KEYS_FILE
from .exceptions import DeploymentError, MissingCredentialError, RpcError
from .rpc import RpcClient
from .store import DeploymentRecordStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
ENCRYPTED_KEY_VAR = "DEPLOYER_PRIVATE_KEY_ENCRYPTED"


@dataclass
class TestWallet:
    """A throwaway development wallet."""

    __test__ = False  # Not a pytest test class

    index: int
    address: str
    private_key: str
    name: Optional[str] = None


def validate_password(password: str) -> None:
    """
    Check a keystore password.

    Raises:
        MissingCredentialError: If the password is shorter than 8 characters
    """
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise MissingCredentialError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def load_signer(settings: Settings, password: Optional[str] = None) -> LocalAccount:
    """
    Load the deployer account.

    A raw PRIVATE_KEY wins over the encrypted keystore.

    Args:
        settings: Runtime settings holding the credentials
        password: Keystore password (defaults to DEPLOYER_PASSWORD)

    Returns:
        Local signing account

    Raises:
        MissingCredentialError: If no key is configured, the password is
            missing, or the key cannot be decoded
    """
    if settings.private_key:
        try:
            return Account.from_key(settings.private_key)
        except ValueError as e:
            raise MissingCredentialError(f"PRIVATE_KEY is not a valid private key: {e}") from e

    if settings.encrypted_key:
        password = password or settings.wallet_password
        if not password:
            raise MissingCredentialError(f"Password required to decrypt {ENCRYPTED_KEY_VAR}")
        try:
            keystore = json.loads(settings.encrypted_key)
            return Account.from_key(Account.decrypt(keystore, password))
        except ValueError as e:
            raise MissingCredentialError(f"Cannot decrypt {ENCRYPTED_KEY_VAR}: {e}") from e

    raise MissingCredentialError(
        f"No deployer key configured. Set PRIVATE_KEY or run 'arandu-deploy wallet generate' "
        f"to create {ENCRYPTED_KEY_VAR}"
    )


def generate_deployer_wallet(env_path: Union[Path, str], password: str) -> LocalAccount:
    """
    Create a new deployer account and store its encrypted keystore.

    The keystore JSON is written to DEPLOYER_PRIVATE_KEY_ENCRYPTED in the
    env file; other lines of the file are kept.

    Args:
        env_path: Path of the .env file (created if missing)
        password: Keystore password, at least 8 characters

    Returns:
        The new account
    """
    validate_password(password)

    account = Account.create()
    keystore = Account.encrypt(account.key, password)

    env_path = Path(env_path)
    env_path.parent.mkdir(parents=True, exist_ok=True)
    env_path.touch()
    serialized = json.dumps(keystore, separators=(",", ":"))
    set_key(env_path, ENCRYPTED_KEY_VAR, serialized, quote_mode="always")

    logger.info("Generated deployer %s; encrypted key saved to %s", account.address, env_path)
    return account


def generate_test_wallets(
    path: Union[Path, str],
    count: int = 2,
    clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
) -> List[TestWallet]:
    """
    Create random test wallets and save them as JSON.

    Args:
        path: Output file (test-wallets.json)
        count: Number of wallets
        clock: Timestamp source for the "generated" field

    Returns:
        The generated wallets, indexed from 1
    """
    if count < 1:
        raise ValueError("count must be at least 1")

    wallets = []
    for index in range(1, count + 1):
        account = Account.create()
        wallets.append(
            TestWallet(index=index, address=account.address, private_key=encode_hex(account.key))
        )

    data = {
        "generated": clock().isoformat(),
        "count": count,
        "wallets": [
            {"index": w.index, "address": w.address, "privateKey": w.private_key} for w in wallets
        ],
    }

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(data, f, indent=2)

    logger.info("Saved %d test wallets to %s", count, path)
    return wallets


def load_test_wallets(path: Union[Path, str]) -> List[TestWallet]:
    """
    Read a test wallets file.

    Raises:
        MissingCredentialError: If the file does not exist
        DeploymentError: If the file is not a wallets document
    """
    path = Path(path)
    if not path.exists():
        raise MissingCredentialError(
            f"Test wallets file not found: {path}. Run 'arandu-deploy wallet test-wallets' first"
        )

    with open(path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise DeploymentError(f"Invalid JSON in test wallets file {path}: {e}") from e

    try:
        return [
            TestWallet(
                index=entry.get("index", position),
                address=entry["address"],
                private_key=entry["privateKey"],
                name=entry.get("name"),
            )
            for position, entry in enumerate(data["wallets"], start=1)
        ]
    except (KeyError, TypeError) as e:
        raise DeploymentError(f"Malformed test wallets file {path}: {e}") from e


def check_balances(rpc: RpcClient, addresses: Iterable[str]) -> Dict[str, Optional[Decimal]]:
    """
    Native-currency balances of addresses.

    Args:
        rpc: JSON-RPC client
        addresses: Addresses to query

    Returns:
        Address -> balance in ether units, None where the query failed
    """
    balances: Dict[str, Optional[Decimal]] = {}
    for address in addresses:
        try:
            balances[address] = from_wei(rpc.get_balance(address), "ether")
        except RpcError as e:
            logger.warning("Could not fetch balance of %s: %s", address, e)
            balances[address] = None
    return balances


def register_wallets(
    session: DemoSession,
    wallets: Iterable[TestWallet],
    store: DeploymentRecordStore,
) -> Dict[str, str]:
    """
    Register test wallets with the Registrar and record their decryption keys.

    The session's signer sends the registrations. Keys are written to
    decryption_keys.json in the network's bucket of the record store.

    Args:
        session: Connected or connectable read-write demo session
        wallets: Wallets to register
        store: Record store receiving decryption_keys.json

    Returns:
        Address -> decryption key
    """
    provider = session.proof_provider
    if not provider.available:
        logger.warning("No proving SDK available; registering with demo payloads")

    keys: Dict[str, str] = {}
    for wallet in wallets:
        label = wallet.name or f"wallet {wallet.index}"
        registered = session.is_user_registered(wallet.address)
        if registered is None:
            raise DeploymentError(
                f"Could not check registration of {label} ({wallet.address}) on {session.network.name}"
            )

        if registered:
            logger.info("%s (%s) already registered", label, wallet.address)
        else:
            logger.info("Registering %s (%s)...", label, wallet.address)
            receipt = session.register(wallet.address)
            if receipt is None:
                raise DeploymentError(f"Registration of {label} ({wallet.address}) failed")

        keys[wallet.address] = provider.decryption_key(wallet.private_key, wallet.address)

    path = store.network_dir(session.network.name) / DECRYPTION_KEYS_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(keys, f, indent=2)

    logger.info("Wrote %d decryption keys to %s", len(keys), path)
    return keys
