"""Compiled artifact loading and library linking for arandu-deployments library."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping

from eth_utils import is_address, remove_0x_prefix

from .exceptions import ArtifactNotFoundError, DeploymentError
from .types import CompiledContract

logger = logging.getLogger(__name__)


class ArtifactLoader:
    """Reads contract artifacts produced by the Hardhat compiler."""

    def __init__(self, artifacts_dir: Path):
        self.artifacts_dir = Path(artifacts_dir)

    def find(self, contract_name: str) -> Path:
        """
        Locate the artifact file of a contract.

        Artifacts live at artifacts/<source path>/<Name>.json; build-info
        files are never candidates.

        Raises:
            ArtifactNotFoundError: If no artifact exists for the contract
        """
        candidates: List[Path] = sorted(
            p
            for p in self.artifacts_dir.rglob(f"{contract_name}.json")
            if "build-info" not in p.parts
        )
        if not candidates:
            raise ArtifactNotFoundError(
                f"No compiled artifact for '{contract_name}' under {self.artifacts_dir}"
            )
        if len(candidates) > 1:
            logger.debug("Multiple artifacts for %s, using %s", contract_name, candidates[0])
        return candidates[0]

    def load(self, contract_name: str) -> CompiledContract:
        """
        Load a compiled contract.

        Raises:
            ArtifactNotFoundError: If the artifact is missing
        """
        path = self.find(contract_name)
        with open(path) as f:
            data = json.load(f)

        return CompiledContract(
            contract_name=data.get("contractName", contract_name),
            source_name=data.get("sourceName", f"contracts/{contract_name}.sol"),
            abi=data["abi"],
            bytecode=data["bytecode"],
            link_references=data.get("linkReferences", {}),
        )

    def build_info(self, contract_name: str) -> Dict[str, Any]:
        """
        Load the compiler build info for a contract.

        Hardhat writes <Name>.dbg.json next to each artifact, pointing at the
        build-info file that holds the solc input and version.

        Raises:
            ArtifactNotFoundError: If the debug file or build info is missing
        """
        artifact_path = self.find(contract_name)
        dbg_path = artifact_path.with_name(f"{contract_name}.dbg.json")
        if not dbg_path.exists():
            raise ArtifactNotFoundError(f"No debug file for '{contract_name}' at {dbg_path}")

        with open(dbg_path) as f:
            dbg = json.load(f)

        build_info_path = (dbg_path.parent / dbg["buildInfo"]).resolve()
        if not build_info_path.exists():
            raise ArtifactNotFoundError(
                f"Build info for '{contract_name}' not found at {build_info_path}"
            )
        with open(build_info_path) as f:
            return json.load(f)


def link_bytecode(
    contract: CompiledContract, libraries: Mapping[str, str]
) -> str:
    """
    Replace library placeholders in bytecode with deployed addresses.

    Args:
        contract: Compiled contract with link references
        libraries: Library name -> deployed address

    Returns:
        0x-prefixed linked bytecode

    Raises:
        DeploymentError: If a referenced library has no address or the address is invalid
    """
    code = remove_0x_prefix(contract.bytecode)

    for source_libraries in contract.link_references.values():
        for library_name, references in source_libraries.items():
            address = libraries.get(library_name)
            if address is None:
                raise DeploymentError(
                    f"{contract.contract_name} needs library '{library_name}' but no address was given"
                )
            if not is_address(address):
                raise DeploymentError(f"Invalid address for library '{library_name}': {address}")

            replacement = remove_0x_prefix(address).lower()
            for ref in references:
                # Offsets are in bytes; two hex characters per byte
                start = ref["start"] * 2
                end = start + ref["length"] * 2
                code = code[:start] + replacement + code[end:]

    return "0x" + code
