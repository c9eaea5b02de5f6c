"""Block explorer source verification for arandu-deployments library."""

import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests
from eth_utils import encode_hex

from .abi import encode_constructor_args
from .artifacts import ArtifactLoader
from .exceptions import DeploymentError, VerificationError
from .types import DeploymentRecord, NetworkDescriptor, VerificationResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_POLL_INTERVAL = 5.0

CODE_FORMAT = "solidity-standard-json-input"


def _already_verified(message: str) -> bool:
    return "already verified" in message.lower()


class VerificationAgent:
    """
    Submits deployed contracts to an Etherscan-compatible verification API.

    Verification only runs on live networks with an explorer API key; the
    agent is a no-op everywhere else.
    """

    def __init__(
        self,
        network: NetworkDescriptor,
        artifacts: ArtifactLoader,
        session: Optional[requests.Session] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.network = network
        self.artifacts = artifacts
        self._session = session or requests.Session()
        self.max_attempts = max_attempts
        self.poll_interval = poll_interval
        self._sleep = sleep

    @property
    def enabled(self) -> bool:
        return bool(
            self.network.live and self.network.explorer_api_url and self.network.explorer_api_key
        )

    def verify_all(self, records: List[DeploymentRecord]) -> List[VerificationResult]:
        """
        Verify each record in turn.

        A failure is logged and recorded; the remaining contracts are still
        attempted.

        Args:
            records: Deployment records to verify

        Returns:
            One result per record, or an empty list when verification is disabled
        """
        if not self.enabled:
            logger.info(
                "Skipping verification on %s (local network or no explorer API key)",
                self.network.name,
            )
            return []

        results = []
        for record in records:
            try:
                message = self.verify(record)
                results.append(
                    VerificationResult(record.contract_name, record.address, True, message)
                )
                url = self.network.address_url(record.address)
                logger.info("Verified %s at %s", record.contract_name, url)
            except DeploymentError as e:
                logger.warning("Verification of %s failed: %s", record.contract_name, e)
                results.append(
                    VerificationResult(record.contract_name, record.address, False, str(e))
                )
        return results

    def verify(self, record: DeploymentRecord) -> str:
        """
        Verify one contract and wait for the explorer's verdict.

        Args:
            record: Deployment record (constructor args and libraries are read from it)

        Returns:
            Explorer status message

        Raises:
            ArtifactNotFoundError: If the compiler build info is missing
            VerificationError: If the explorer rejects the submission or never decides
        """
        try:
            contract = self.artifacts.load(record.contract_name)
            build_info = self.artifacts.build_info(record.contract_name)
        except (KeyError, ValueError) as e:
            raise VerificationError(
                f"Malformed artifact or build info for {record.contract_name}: {e}"
            ) from e
        if "input" not in build_info or "solcLongVersion" not in build_info:
            raise VerificationError(
                f"Build info of {record.contract_name} lacks compiler input or version"
            )

        solc_input = dict(build_info["input"])
        if record.libraries:
            # Linked library addresses must be part of the compiler settings
            libraries: Dict[str, Dict[str, str]] = {}
            for source, source_libraries in contract.link_references.items():
                for name in source_libraries:
                    if name in record.libraries:
                        libraries.setdefault(source, {})[name] = record.libraries[name]
            solc_input["settings"] = dict(solc_input.get("settings", {}), libraries=libraries)

        try:
            constructor_args = encode_constructor_args(contract.abi, record.args or [])
        except (ValueError, TypeError, KeyError) as e:
            raise VerificationError(
                f"Cannot encode constructor arguments of {record.contract_name}: {e}"
            ) from e

        payload = {
            "module": "contract",
            "action": "verifysourcecode",
            "contractaddress": record.address,
            "sourceCode": json.dumps(solc_input),
            "codeformat": CODE_FORMAT,
            "contractname": contract.fully_qualified_name,
            "compilerversion": "v" + build_info["solcLongVersion"],
            "constructorArguements": encode_hex(constructor_args)[2:],
        }

        submitted = self._request("POST", payload)
        if submitted.get("status") != "1":
            message = str(submitted.get("result", ""))
            if _already_verified(message):
                return message
            raise VerificationError(
                f"{record.contract_name} on {self.network.name}: submission rejected: {message}"
            )

        return self._wait_for_verdict(record.contract_name, submitted["result"])

    def _wait_for_verdict(self, contract_name: str, guid: str) -> str:
        for _ in range(self.max_attempts):
            self._sleep(self.poll_interval)
            status = self._request(
                "GET", {"module": "contract", "action": "checkverifystatus", "guid": guid}
            )
            message = str(status.get("result", ""))

            if status.get("status") == "1" or _already_verified(message):
                return message
            if "pending" in message.lower():
                logger.debug("%s verification pending (%s)", contract_name, guid)
                continue
            raise VerificationError(f"{contract_name} on {self.network.name}: {message}")

        raise VerificationError(
            f"{contract_name} on {self.network.name}: no verdict after {self.max_attempts} checks"
        )

    def _request(self, method: str, params: Dict[str, Any]) -> Dict[str, Any]:
        params = dict(params, apikey=self.network.explorer_api_key)
        query: Dict[str, Any] = {}
        if "/v2/" in self.network.explorer_api_url:
            query["chainid"] = self.network.chain_id

        try:
            if method == "POST":
                response = self._session.post(
                    self.network.explorer_api_url, params=query, data=params, timeout=DEFAULT_TIMEOUT
                )
            else:
                response = self._session.get(
                    self.network.explorer_api_url,
                    params=dict(query, **params),
                    timeout=DEFAULT_TIMEOUT,
                )
        except requests.RequestException as e:
            raise VerificationError(
                f"Network error talking to {self.network.explorer_api_url}: {e}"
            ) from e

        if response.status_code != 200:
            raise VerificationError(
                f"Explorer API returned HTTP status {response.status_code}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise VerificationError("Explorer API returned a non-JSON body") from e
