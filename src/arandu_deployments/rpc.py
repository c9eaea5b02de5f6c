"""JSON-RPC transport for arandu-deployments library."""

import itertools
import logging
from typing import Any, Dict, List, Optional

import requests

from .exceptions import RpcError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


def _to_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    return int(value, 16)


class RpcClient:
    """Minimal Ethereum JSON-RPC client over HTTP."""

    def __init__(
        self,
        rpc_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.rpc_url = rpc_url
        self._session = session or requests.Session()
        self._timeout = timeout
        self._ids = itertools.count(1)

    def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Perform one JSON-RPC call.

        Args:
            method: RPC method name, e.g. "eth_blockNumber"
            params: Positional parameters

        Returns:
            The "result" member of the response

        Raises:
            RpcError: On HTTP failure, network error, or RPC error object
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": next(self._ids),
        }
        try:
            response = self._session.post(self.rpc_url, json=payload, timeout=self._timeout)
        except requests.RequestException as e:
            raise RpcError(f"Network error during {method}: {e}") from e

        # Check for HTTP errors
        if response.status_code != 200:
            raise RpcError(f"{method} failed with HTTP status {response.status_code}")

        try:
            result = response.json()
        except ValueError as e:
            raise RpcError(f"{method} returned a non-JSON body") from e

        # Check for RPC errors
        if "error" in result:
            error = result["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise RpcError(f"{method} error: {message}")

        return result.get("result")

    def chain_id(self) -> int:
        return int(self.call("eth_chainId"), 16)

    def block_number(self) -> int:
        return int(self.call("eth_blockNumber"), 16)

    def get_balance(self, address: str) -> int:
        return int(self.call("eth_getBalance", [address, "latest"]), 16)

    def get_transaction_count(self, address: str) -> int:
        return int(self.call("eth_getTransactionCount", [address, "pending"]), 16)

    def gas_price(self) -> int:
        return int(self.call("eth_gasPrice"), 16)

    def estimate_gas(self, tx: Dict[str, Any]) -> int:
        return int(self.call("eth_estimateGas", [tx]), 16)

    def send_raw_transaction(self, raw_tx: str) -> str:
        return self.call("eth_sendRawTransaction", [raw_tx])

    def eth_call(self, tx: Dict[str, Any]) -> str:
        return self.call("eth_call", [tx, "latest"])

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """
        Get a transaction receipt.

        Returns:
            Receipt with blockNumber/status/gasUsed converted to int,
            or None while the transaction is pending
        """
        receipt = self.call("eth_getTransactionReceipt", [tx_hash])
        if receipt is None:
            return None
        converted = dict(receipt)
        for key in ("blockNumber", "status", "gasUsed"):
            if key in converted:
                converted[key] = _to_int(converted[key])
        return converted
