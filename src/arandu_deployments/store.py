"""Per-network deployment record storage for arandu-deployments library."""

import json
import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from .exceptions import DefectiveRecordError, RecordNotFoundError
from .parsers import is_contract_file, parse_deployment_file
from .paths import get_deployments_dir
from .types import DeploymentRecord

logger = logging.getLogger(__name__)


def _bucket_name(network: str) -> str:
    return str(network).strip().lower()


class DeploymentRecordStore:
    """
    Filesystem store of deployment records keyed by (network, contract name).

    Layout: <root>/<network>/<ContractName>.json
    """

    def __init__(self, root: Optional[Union[Path, str]] = None):
        """
        Initialize the record store.

        Args:
            root: Store root directory (defaults to ./deployments).
                  Created lazily on first write.
        """
        self.root = get_deployments_dir(root)

    def network_dir(self, network: str) -> Path:
        return self.root / _bucket_name(network)

    def record_path(self, network: str, contract_name: str) -> Path:
        return self.network_dir(network) / f"{contract_name}.json"

    def has_network(self, network: str) -> bool:
        """
        Check if a network has a bucket in the store.

        Args:
            network: Network name (case-insensitive)

        Returns:
            True if the network directory exists
        """
        return self.network_dir(network).is_dir()

    def networks(self) -> List[str]:
        """Names of all network buckets, sorted."""
        if not self.root.is_dir():
            return []
        return sorted(p.name for p in self.root.iterdir() if p.is_dir())

    def put(self, network: str, contract_name: str, record: DeploymentRecord) -> Path:
        """
        Write a record, replacing any previous one.

        Args:
            network: Network name
            contract_name: Contract name (file stem)
            record: Record to persist

        Returns:
            Path of the written file
        """
        path = self.record_path(network, contract_name)
        path.parent.mkdir(parents=True, exist_ok=True)

        # Write to a sibling temp file first so readers never see half a record
        tmp_path = path.with_name(f".{path.name}.tmp")
        with open(tmp_path, "w") as f:
            json.dump(record.to_json(), f, indent=2)
            f.write("\n")
        os.replace(tmp_path, path)

        logger.debug("Stored %s on %s at %s", contract_name, network, path)
        return path

    def get(self, network: str, contract_name: str) -> DeploymentRecord:
        """
        Read one record.

        Args:
            network: Network name
            contract_name: Contract name

        Returns:
            DeploymentRecord

        Raises:
            RecordNotFoundError: If no record exists for the pair
        """
        path = self.record_path(network, contract_name)
        if not path.exists():
            raise RecordNotFoundError(
                f"Contract '{contract_name}' has no deployment record on network '{network}'"
            )
        return parse_deployment_file(path)

    def has(self, network: str, contract_name: str) -> bool:
        return self.record_path(network, contract_name).exists()

    def list(self, network: str) -> List[DeploymentRecord]:
        """
        Read all records of a network.

        Files that are not contract records, or that lack an address or ABI,
        are skipped.

        Args:
            network: Network name

        Returns:
            Records sorted by contract name; empty if the network has none
        """
        directory = self.network_dir(network)
        if not directory.is_dir():
            return []

        records: List[DeploymentRecord] = []
        for path in sorted(directory.glob("*.json")):
            if not is_contract_file(path):
                continue
            try:
                records.append(parse_deployment_file(path))
            except DefectiveRecordError as e:
                logger.warning("Skipping %s: %s", path.name, e)
        return sorted(records, key=lambda r: r.contract_name)

    def migrate(self, source: str, target: str) -> int:
        """
        Move every file of the source bucket into the target bucket.

        Files already present in the target are overwritten. The source
        directory is removed when it ends up empty.

        Args:
            source: Placeholder bucket name (e.g. "unknown")
            target: Real network name

        Returns:
            Number of files moved (0 if the source bucket does not exist)
        """
        source_dir = self.network_dir(source)
        target_dir = self.network_dir(target)

        if not source_dir.is_dir():
            logger.info("No '%s' deployments bucket, nothing to migrate", source)
            return 0
        if source_dir == target_dir:
            return 0

        target_dir.mkdir(parents=True, exist_ok=True)

        moved = 0
        for src in sorted(source_dir.iterdir()):
            if not src.is_file():
                continue
            dest = target_dir / src.name
            try:
                os.replace(src, dest)
                moved += 1
            except OSError as e:
                logger.warning("Failed to move %s -> %s: %s", src, dest, e)

        # Leave the directory in place if anything could not be moved
        if not any(source_dir.iterdir()):
            source_dir.rmdir()

        logger.info("Migrated %d files from deployments/%s to %s", moved, source, target_dir)
        return moved
