"""Unit tests for deployer and test wallet management."""

import dataclasses
import json
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest
from dotenv import dotenv_values
from eth_account import Account

from arandu_deployments.client import DemoProofProvider
from arandu_deployments.exceptions import DeploymentError, MissingCredentialError, RpcError
from arandu_deployments.wallets import (
    ENCRYPTED_KEY_VAR,
    TestWallet,
    check_balances,
    generate_deployer_wallet,
    generate_test_wallets,
    load_signer,
    load_test_wallets,
    register_wallets,
    validate_password,
)

PASSWORD = "correct horse"


@pytest.fixture
def keystore(deployer_account) -> str:
    """Encrypted deployer keystore (fast KDF)."""
    return json.dumps(
        Account.encrypt(deployer_account.key, PASSWORD, kdf="pbkdf2", iterations=2)
    )


class TestValidatePassword:
    """Test keystore password rules."""

    def test_accepts_long_password(self):
        """Test that 8+ character passwords pass."""
        validate_password("12345678")

    @pytest.mark.parametrize("password", ["", "short", "1234567"])
    def test_rejects_short_password(self, password):
        """Test that short passwords raise MissingCredentialError."""
        with pytest.raises(MissingCredentialError, match="at least 8 characters"):
            validate_password(password)


class TestLoadSigner:
    """Test deployer credential loading."""

    def test_private_key(self, settings, deployer_account):
        """Test loading a raw private key."""
        assert load_signer(settings).address == deployer_account.address

    def test_private_key_wins_over_keystore(self, settings, deployer_account):
        """Test that PRIVATE_KEY takes precedence over the keystore."""
        other = Account.create()
        other_keystore = Account.encrypt(other.key, PASSWORD, kdf="pbkdf2", iterations=2)
        keyed = dataclasses.replace(settings, encrypted_key=json.dumps(other_keystore))
        assert load_signer(keyed, PASSWORD).address == deployer_account.address

    def test_keystore_with_password(self, settings, keystore, deployer_account):
        """Test decrypting the keystore with an explicit password."""
        keyed = dataclasses.replace(settings, private_key=None, encrypted_key=keystore)
        assert load_signer(keyed, PASSWORD).address == deployer_account.address

    def test_keystore_with_password_from_settings(self, settings, keystore, deployer_account):
        """Test that DEPLOYER_PASSWORD is used when no password is given."""
        keyed = dataclasses.replace(
            settings, private_key=None, encrypted_key=keystore, wallet_password=PASSWORD
        )
        assert load_signer(keyed).address == deployer_account.address

    def test_keystore_without_password_raises(self, settings, keystore):
        """Test that a keystore without password raises MissingCredentialError."""
        keyed = dataclasses.replace(settings, private_key=None, encrypted_key=keystore)
        with pytest.raises(MissingCredentialError, match="Password required"):
            load_signer(keyed)

    def test_wrong_password_raises(self, settings, keystore):
        """Test that a wrong password raises MissingCredentialError."""
        keyed = dataclasses.replace(settings, private_key=None, encrypted_key=keystore)
        with pytest.raises(MissingCredentialError, match="Cannot decrypt"):
            load_signer(keyed, "wrong password")

    def test_no_credentials_raises(self, settings):
        """Test that missing credentials raise MissingCredentialError."""
        bare = dataclasses.replace(settings, private_key=None)
        with pytest.raises(MissingCredentialError, match="No deployer key configured"):
            load_signer(bare)

    def test_invalid_private_key_raises(self, settings):
        """Test that a malformed key raises MissingCredentialError."""
        broken = dataclasses.replace(settings, private_key="0x1234")
        with pytest.raises(MissingCredentialError, match="not a valid private key"):
            load_signer(broken)


class TestGenerateDeployerWallet:
    """Test deployer wallet generation."""

    def test_writes_encrypted_key(self, tmp_path: Path):
        """Test that the keystore is saved to the env file and decrypts."""
        env_path = tmp_path / ".env"
        env_path.write_text("ALCHEMY_API_KEY=abc\n")

        account = generate_deployer_wallet(env_path, PASSWORD)

        env = dotenv_values(env_path)
        assert env["ALCHEMY_API_KEY"] == "abc"
        keystore = json.loads(env[ENCRYPTED_KEY_VAR])
        assert Account.from_key(Account.decrypt(keystore, PASSWORD)).address == account.address

    def test_short_password_raises(self, tmp_path: Path):
        """Test that a short password is rejected before anything is written."""
        env_path = tmp_path / ".env"

        with pytest.raises(MissingCredentialError):
            generate_deployer_wallet(env_path, "short")
        assert not env_path.exists()


class TestTestWallets:
    """Test generating and loading test wallets."""

    def test_generate_and_load(self, tmp_path: Path):
        """Test that generated wallets are saved and read back."""
        path = tmp_path / "wallets" / "test-wallets.json"
        clock = lambda: datetime(2024, 5, 1, tzinfo=timezone.utc)

        wallets = generate_test_wallets(path, count=3, clock=clock)

        data = json.loads(path.read_text())
        assert data["count"] == 3
        assert data["generated"] == "2024-05-01T00:00:00+00:00"
        assert [w["index"] for w in data["wallets"]] == [1, 2, 3]
        assert load_test_wallets(path) == wallets

    def test_keys_match_addresses(self, tmp_path: Path):
        """Test that each private key controls its address."""
        for wallet in generate_test_wallets(tmp_path / "w.json", count=2):
            assert wallet.private_key.startswith("0x")
            assert Account.from_key(wallet.private_key).address == wallet.address

    def test_count_must_be_positive(self, tmp_path: Path):
        """Test that zero wallets is rejected."""
        with pytest.raises(ValueError):
            generate_test_wallets(tmp_path / "w.json", count=0)

    def test_missing_file_raises(self, tmp_path: Path):
        """Test that a missing wallets file raises MissingCredentialError."""
        with pytest.raises(MissingCredentialError, match="not found"):
            load_test_wallets(tmp_path / "missing.json")

    def test_malformed_file_raises(self, tmp_path: Path):
        """Test that a document without wallets raises DeploymentError."""
        path = tmp_path / "w.json"
        path.write_text('{"count": 1}')
        with pytest.raises(DeploymentError, match="Malformed"):
            load_test_wallets(path)

    def test_invalid_json_raises(self, tmp_path: Path):
        """Test that broken JSON raises DeploymentError."""
        path = tmp_path / "w.json"
        path.write_text("{")
        with pytest.raises(DeploymentError, match="Invalid JSON"):
            load_test_wallets(path)


class TestCheckBalances:
    """Test balance queries."""

    def test_balances_in_ether(self, fake_chain):
        """Test that balances are converted from wei."""
        fake_chain.balances["0x1"] = 1_500_000_000_000_000_000

        balances = check_balances(fake_chain, ["0x1", "0x2"])

        assert balances == {"0x1": Decimal("1.5"), "0x2": Decimal("0")}

    def test_failed_query_is_none(self, fake_chain, monkeypatch):
        """Test that an RPC failure yields None for that address."""

        def failing_balance(address):
            raise RpcError("eth_getBalance failed with HTTP status 502")

        monkeypatch.setattr(fake_chain, "get_balance", failing_balance)

        assert check_balances(fake_chain, ["0x1"]) == {"0x1": None}


class FakeSession:
    """Session stand-in recording registration calls."""

    def __init__(self, network, registered=(), fail_on=None):
        self.network = network
        self.proof_provider = DemoProofProvider()
        self.registered = set(registered)
        self.fail_on = fail_on
        self.register_calls = []

    def is_user_registered(self, address):
        return address in self.registered

    def register(self, address):
        self.register_calls.append(address)
        if address == self.fail_on:
            return None
        self.registered.add(address)
        return {"status": 1}


class TestRegisterWallets:
    """Test registering test wallets."""

    def make_wallets(self):
        return [
            TestWallet(
                index=1, address="0x0000000000000000000000000000000000000001", private_key="0x01"
            ),
            TestWallet(
                index=2, address="0x0000000000000000000000000000000000000002", private_key="0x02"
            ),
        ]

    def test_registers_unregistered_wallets(self, localhost, store):
        """Test that only unregistered wallets are registered."""
        wallets = self.make_wallets()
        session = FakeSession(localhost, registered=[wallets[0].address])

        keys = register_wallets(session, wallets, store)

        assert session.register_calls == [wallets[1].address]
        assert set(keys) == {w.address for w in wallets}

    def test_writes_decryption_keys(self, localhost, store):
        """Test that decryption keys land in the network bucket."""
        wallets = self.make_wallets()

        keys = register_wallets(FakeSession(localhost), wallets, store)

        path = store.network_dir("localhost") / "decryption_keys.json"
        assert json.loads(path.read_text()) == keys
        assert keys[wallets[0].address] == f"demo-dek-{wallets[0].address}"

    def test_failed_registration_raises(self, localhost, store):
        """Test that a failed registration raises DeploymentError."""
        wallets = self.make_wallets()
        session = FakeSession(localhost, fail_on=wallets[0].address)

        with pytest.raises(DeploymentError, match="Registration of wallet 1"):
            register_wallets(session, wallets, store)

    def test_keys_do_not_count_as_records(self, localhost, store):
        """Test that the keys file is invisible to the record store."""
        register_wallets(FakeSession(localhost), self.make_wallets(), store)
        assert store.list("localhost") == []

