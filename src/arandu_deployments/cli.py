"""
Command line interface for arandu-deployments.

Usage:
    arandu-deploy deploy fuji
    arandu-deploy deploy localhost --only AranduCertificate --no-verify
    arandu-deploy generate fuji
    arandu-deploy migrate fuji
    arandu-deploy verify sepolia
    arandu-deploy wallet generate
    arandu-deploy wallet account
    arandu-deploy wallet test-wallets -n 5
    arandu-deploy balances fuji
    arandu-deploy register-wallets localhost

Exit Codes:
    0 - Success
    1 - Deployment error (network, credentials, transactions, artifacts)
    2 - Usage error
"""

import argparse
import getpass
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .client import DemoSession
from .config import Settings
from .constants import PLACEHOLDER_NETWORK
from .deployments import (
    deploy_to_network,
    generate_frontend_artifacts,
    migrate_placeholder,
    verify_network,
)
from .exceptions import DeploymentError, MissingCredentialError
from .networks import available_networks, resolve_network
from .paths import get_wallets_file
from .rpc import RpcClient
from .store import DeploymentRecordStore
from .wallets import (
    ENCRYPTED_KEY_VAR,
    check_balances,
    generate_deployer_wallet,
    generate_test_wallets,
    load_signer,
    load_test_wallets,
    register_wallets,
    validate_password,
)

logger = logging.getLogger(__name__)

DEFAULT_NETWORK = "localhost"


def _network(args: argparse.Namespace, settings: Settings) -> str:
    return args.network or settings.default_network or DEFAULT_NETWORK


def _password(settings: Settings) -> Optional[str]:
    """Prompt for the keystore password when only an encrypted key is configured."""
    if settings.private_key or not settings.encrypted_key or settings.wallet_password:
        return None
    return getpass.getpass("Password to decrypt the deployer key: ")


def _cmd_deploy(args: argparse.Namespace, settings: Settings) -> int:
    result = deploy_to_network(
        settings,
        _network(args, settings),
        only=args.only,
        verify=not args.no_verify,
        sync=not args.no_sync,
        password=_password(settings),
    )

    print(f"Network: {result.run.network}")
    if result.migrated:
        print(f"Migrated {result.migrated} files from deployments/{PLACEHOLDER_NETWORK}")
    for name, record in result.run.records.items():
        status = "deployed" if name in result.run.deployed else "existing"
        print(f"  {name}: {record.address} ({status})")
    for verification in result.verification:
        status = "verified" if verification.verified else f"not verified: {verification.message}"
        print(f"  {verification.contract_name}: {status}")
    if result.sync is not None and not result.sync.ok:
        for kind, message in result.sync.failures.items():
            print(f"  frontend {kind} not written: {message}")
    return 0


def _cmd_generate(args: argparse.Namespace, settings: Settings) -> int:
    report = generate_frontend_artifacts(settings, _network(args, settings))
    for path in report.written:
        print(f"  wrote {path}")
    for kind, message in report.failures.items():
        print(f"  {kind} failed: {message}")
    return 0 if report.ok else 1


def _cmd_migrate(args: argparse.Namespace, settings: Settings) -> int:
    network = _network(args, settings)
    moved = migrate_placeholder(settings, network, source=args.source)
    print(f"Moved {moved} files from deployments/{args.source} to deployments/{network.lower()}")
    return 0


def _cmd_verify(args: argparse.Namespace, settings: Settings) -> int:
    results = verify_network(settings, _network(args, settings), contract_names=args.contracts)
    if not results:
        print("Nothing verified (local network, no explorer API key, or no records)")
    for result in results:
        status = "verified" if result.verified else f"failed: {result.message}"
        print(f"  {result.contract_name} {result.address}: {status}")
    return 0 if all(r.verified for r in results) else 1


def _cmd_wallet_generate(args: argparse.Namespace, settings: Settings) -> int:
    env_path = Path(args.env_file or ".env")
    if settings.encrypted_key:
        answer = input("A deployer account already exists. Overwrite it? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Operation cancelled.")
            return 0

    password = getpass.getpass("Password to encrypt the private key: ")
    validate_password(password)
    if getpass.getpass("Confirm password: ") != password:
        raise MissingCredentialError("Passwords don't match")

    account = generate_deployer_wallet(env_path, password)
    print(f"Address: {account.address}")
    print(f"Encrypted key saved to {env_path} as {ENCRYPTED_KEY_VAR}")
    return 0


def _cmd_wallet_account(args: argparse.Namespace, settings: Settings) -> int:
    signer = load_signer(settings, _password(settings))
    print(f"Deployer: {signer.address}")

    for name in args.networks or available_networks():
        try:
            network = resolve_network(name, settings.env)
        except MissingCredentialError as e:
            print(f"  {name}: skipped ({e})")
            continue
        balance = check_balances(RpcClient(network.rpc_url), [signer.address])[signer.address]
        shown = "unavailable" if balance is None else f"{balance} {network.currency_symbol}"
        print(f"  {network.chain_name}: {shown}")
    return 0


def _cmd_wallet_test_wallets(args: argparse.Namespace, settings: Settings) -> int:
    if args.count < 1:
        print("arandu-deploy: --count must be at least 1", file=sys.stderr)
        return 2
    path = Path(args.wallets_file) if args.wallets_file else get_wallets_file()
    wallets = generate_test_wallets(path, count=args.count)
    for wallet in wallets:
        print(f"  Wallet {wallet.index}: {wallet.address}")
    print(f"Saved to {path}")
    return 0


def _cmd_balances(args: argparse.Namespace, settings: Settings) -> int:
    network = resolve_network(_network(args, settings), settings.env)
    path = Path(args.wallets_file) if args.wallets_file else get_wallets_file()
    wallets = load_test_wallets(path)

    balances = check_balances(RpcClient(network.rpc_url), [w.address for w in wallets])
    print(f"{network.chain_name}:")
    for wallet in wallets:
        balance = balances[wallet.address]
        shown = "unavailable" if balance is None else f"{balance} {network.currency_symbol}"
        print(f"  Wallet {wallet.index} {wallet.address}: {shown}")
    return 0


def _cmd_register_wallets(args: argparse.Namespace, settings: Settings) -> int:
    network = resolve_network(_network(args, settings), settings.env)
    path = Path(args.wallets_file) if args.wallets_file else get_wallets_file()
    wallets = load_test_wallets(path)

    signer = load_signer(settings, _password(settings))
    session = DemoSession(settings, network, signer=signer)
    keys = register_wallets(session, wallets, DeploymentRecordStore(settings.deployments_dir))
    print(f"Registered {len(keys)} wallets on {network.name}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="arandu-deploy",
        description="Deploy the ARANDU contract ecosystem and publish it to the frontend.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--env-file", help="Path of the .env file to load (default: ./.env)")

    commands = parser.add_subparsers(dest="command", required=True)

    deploy = commands.add_parser("deploy", help="Deploy contracts, verify them and sync the frontend")
    deploy.add_argument("network", nargs="?", help="Target network (default: $NETWORK or localhost)")
    deploy.add_argument("--only", nargs="+", metavar="NAME", help="Deploy only these contracts")
    deploy.add_argument("--no-verify", action="store_true", help="Skip block explorer verification")
    deploy.add_argument("--no-sync", action="store_true", help="Skip frontend synchronization")
    deploy.set_defaults(handler=_cmd_deploy)

    generate = commands.add_parser("generate", help="Regenerate frontend artifacts from stored records")
    generate.add_argument("network", nargs="?")
    generate.set_defaults(handler=_cmd_generate)

    migrate = commands.add_parser("migrate", help="Move placeholder records into a network")
    migrate.add_argument("network", nargs="?")
    migrate.add_argument("--source", default=PLACEHOLDER_NETWORK, help="Bucket to move from")
    migrate.set_defaults(handler=_cmd_migrate)

    verify = commands.add_parser("verify", help="Verify stored contracts on the block explorer")
    verify.add_argument("network", nargs="?")
    verify.add_argument("--contracts", nargs="+", metavar="NAME", help="Contracts to verify")
    verify.set_defaults(handler=_cmd_verify)

    wallet = commands.add_parser("wallet", help="Deployer and test wallet tools")
    wallet_commands = wallet.add_subparsers(dest="wallet_command", required=True)

    wallet_generate = wallet_commands.add_parser("generate", help="Create an encrypted deployer key")
    wallet_generate.set_defaults(handler=_cmd_wallet_generate)

    wallet_account = wallet_commands.add_parser("account", help="Show the deployer and its balances")
    wallet_account.add_argument("networks", nargs="*")
    wallet_account.set_defaults(handler=_cmd_wallet_account)

    wallet_test = wallet_commands.add_parser("test-wallets", help="Generate test wallets")
    wallet_test.add_argument("-n", "--count", type=int, default=2, help="Number of wallets")
    wallet_test.add_argument("--wallets-file", help="Output file")
    wallet_test.set_defaults(handler=_cmd_wallet_test_wallets)

    balances = commands.add_parser("balances", help="Show test wallet balances")
    balances.add_argument("network", nargs="?")
    balances.add_argument("--wallets-file", help="Test wallets file")
    balances.set_defaults(handler=_cmd_balances)

    register = commands.add_parser("register-wallets", help="Register test wallets with the Registrar")
    register.add_argument("network", nargs="?")
    register.add_argument("--wallets-file", help="Test wallets file")
    register.set_defaults(handler=_cmd_register_wallets)

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """
    Run the command line interface.

    Args:
        args: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Process exit code
    """
    parser = build_parser()
    parsed = parser.parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = Settings.from_env(dotenv_path=parsed.env_file)
        return parsed.handler(parsed, settings)
    except DeploymentError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
