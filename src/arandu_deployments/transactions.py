"""Transaction signing, submission and confirmation for arandu-deployments library."""

import logging
import time
from typing import Any, Callable, Dict, Optional

from eth_account.signers.local import LocalAccount
from eth_utils import encode_hex

from .exceptions import ConfirmationTimeoutError, DeploymentRevertedError, RpcError
from .rpc import RpcClient

logger = logging.getLogger(__name__)

# Headroom added to node gas estimates
GAS_ESTIMATE_MARGIN = 1.2


def send_transaction(
    rpc: RpcClient,
    account: LocalAccount,
    chain_id: int,
    data: str = "0x",
    to: Optional[str] = None,
    value: int = 0,
    gas_price: Optional[int] = None,
    gas_limit: Optional[int] = None,
) -> str:
    """
    Sign a legacy transaction locally and submit it.

    Omitting `to` creates a contract.

    Args:
        rpc: JSON-RPC client
        account: Signing account
        chain_id: Chain id for replay protection
        data: 0x-prefixed calldata or init code
        to: Recipient address
        value: Wei to transfer
        gas_price: Gas price in wei (defaults to eth_gasPrice)
        gas_limit: Gas limit (defaults to eth_estimateGas plus margin)

    Returns:
        Transaction hash

    Raises:
        DeploymentRevertedError: If gas estimation or submission is rejected
    """
    call: Dict[str, Any] = {"from": account.address, "data": data, "value": hex(value)}
    if to is not None:
        call["to"] = to

    try:
        if gas_limit is None:
            gas_limit = int(rpc.estimate_gas(call) * GAS_ESTIMATE_MARGIN)
        if gas_price is None:
            gas_price = rpc.gas_price()
        nonce = rpc.get_transaction_count(account.address)
    except RpcError as e:
        raise DeploymentRevertedError(f"Transaction rejected before submission: {e}") from e

    tx: Dict[str, Any] = {
        "nonce": nonce,
        "gas": gas_limit,
        "gasPrice": gas_price,
        "value": value,
        "data": data,
        "chainId": chain_id,
    }
    if to is not None:
        tx["to"] = to

    signed = account.sign_transaction(tx)

    try:
        tx_hash = rpc.send_raw_transaction(encode_hex(signed.raw_transaction))
    except RpcError as e:
        raise DeploymentRevertedError(f"Transaction submission failed: {e}") from e

    logger.debug("Submitted transaction %s (nonce %d)", tx_hash, nonce)
    return tx_hash


def wait_for_receipt(
    rpc: RpcClient,
    tx_hash: str,
    confirmations: int = 1,
    timeout: float = 300.0,
    poll_interval: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Dict[str, Any]:
    """
    Wait until a transaction is mined and buried under enough blocks.

    The receipt block counts as the first confirmation.

    Args:
        rpc: JSON-RPC client
        tx_hash: Transaction hash
        confirmations: Required confirmation depth
        timeout: Seconds to wait in total
        poll_interval: Seconds between polls
        sleep: Sleep function (injectable for tests)
        clock: Monotonic clock (injectable for tests)

    Returns:
        Transaction receipt

    Raises:
        DeploymentRevertedError: If the transaction was mined with status 0
        ConfirmationTimeoutError: If the receipt or confirmations do not arrive in time
    """
    deadline = clock() + timeout

    receipt = rpc.get_transaction_receipt(tx_hash)
    while receipt is None:
        if clock() >= deadline:
            raise ConfirmationTimeoutError(
                f"No receipt for transaction {tx_hash} after {timeout:.0f}s"
            )
        sleep(poll_interval)
        receipt = rpc.get_transaction_receipt(tx_hash)

    # Receipts without status predate Byzantium and count as success
    if receipt.get("status") == 0:
        raise DeploymentRevertedError(
            f"Transaction {tx_hash} reverted in block {receipt.get('blockNumber')}"
        )

    mined_in = receipt["blockNumber"]
    while rpc.block_number() - mined_in + 1 < confirmations:
        if clock() >= deadline:
            raise ConfirmationTimeoutError(
                f"Transaction {tx_hash} did not reach {confirmations} confirmations "
                f"after {timeout:.0f}s"
            )
        sleep(poll_interval)

    return receipt
