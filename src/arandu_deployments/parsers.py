"""Deployment file parsers for arandu-deployments library."""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import DefectiveRecordError
from .types import DeploymentRecord

# Files living next to contract records that are not contract records
NON_CONTRACT_FILES = {"decryption_keys.json", "deployment.json"}
NON_CONTRACT_PREFIXES = ("latest-", "deployment-")


class DeploymentFormat(Enum):
    """
    Deployment file format types.

    Value strings define de/serialization law.

    - RECORD: {contractName, address, abi, ...} written by the record store
    - HARDHAT_DEPLOY: hardhat-deploy output (receipt, transactionHash, args)
    - WRAPPED: {contract: {address, abi}}
    - ADDRESS_MAP: {abi, addresses: {chainId: address}}
    """

    RECORD = "record"
    HARDHAT_DEPLOY = "hardhat-deploy"
    WRAPPED = "wrapped"
    ADDRESS_MAP = "address-map"


def is_contract_file(path: Path) -> bool:
    """
    Check whether a file in a network bucket holds a contract record.

    Args:
        path: File path inside a network directory

    Returns:
        True for <ContractName>.json files, False for summaries and keys
    """
    if path.suffix != ".json" or path.name.startswith("."):
        return False
    if path.name in NON_CONTRACT_FILES:
        return False
    return not path.name.startswith(NON_CONTRACT_PREFIXES)


def detect_deployment_format(data: Dict[str, Any]) -> Optional[DeploymentFormat]:
    """
    Detect which format a parsed deployment file uses.

    Args:
        data: Parsed JSON content

    Returns:
        DeploymentFormat, or None if the content is not recognized
    """
    if "receipt" in data or ("transactionHash" in data and "contractName" not in data):
        return DeploymentFormat.HARDHAT_DEPLOY
    if "address" in data:
        return DeploymentFormat.RECORD
    if isinstance(data.get("contract"), dict):
        return DeploymentFormat.WRAPPED
    if isinstance(data.get("addresses"), dict):
        return DeploymentFormat.ADDRESS_MAP
    return None


def parse_deployment_file(file_path: Path) -> DeploymentRecord:
    """
    Parse a deployment file into a record.

    The contract name defaults to the file stem.

    Args:
        file_path: Path to <ContractName>.json

    Returns:
        DeploymentRecord

    Raises:
        DefectiveRecordError: If the file has no address or no ABI
    """
    try:
        with open(file_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise DefectiveRecordError(f"Invalid JSON in deployment file {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise DefectiveRecordError(f"Unexpected content in deployment file {file_path}")

    contract_name = data.get("contractName") or file_path.stem
    address = None
    abi = None
    block_number = None
    block_hash = None
    deployer = None

    match detect_deployment_format(data):
        case DeploymentFormat.HARDHAT_DEPLOY:
            address = data.get("address")
            abi = data.get("abi")
            receipt = data.get("receipt") or {}
            block_number = receipt.get("blockNumber", data.get("blockNumber"))
            block_hash = receipt.get("blockHash")
            deployer = receipt.get("from")
        case DeploymentFormat.RECORD:
            address = data["address"]
            abi = data.get("abi")
            block_number = data.get("blockNumber")
            block_hash = data.get("blockHash")
            deployer = data.get("deployer")
        case DeploymentFormat.WRAPPED:
            address = data["contract"].get("address")
            abi = data["contract"].get("abi", data.get("abi"))
        case DeploymentFormat.ADDRESS_MAP:
            # Pick the first address listed
            addresses = list(data["addresses"].values())
            address = addresses[0] if addresses else None
            abi = data.get("abi")
        case None:
            pass

    if not address:
        raise DefectiveRecordError(f"Missing address in deployment file: {file_path}")
    if abi is None:
        raise DefectiveRecordError(f"Missing ABI in deployment file: {file_path}")

    return DeploymentRecord(
        contract_name=contract_name,
        address=address,
        abi=abi,
        transaction_hash=data.get("transactionHash"),
        block_number=block_number,
        block_hash=block_hash,
        deployer=deployer,
        args=data.get("args"),
        libraries=data.get("libraries"),
    )
