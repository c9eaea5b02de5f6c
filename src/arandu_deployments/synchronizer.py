"""Frontend configuration synchronization for arandu-deployments library."""

import json
import logging
import re
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from dotenv import set_key

from .constants import DECRYPTION_KEYS_FILE, DEFAULT_ENV_PREFIX, ROLE_CONTRACTS, VERIFIER_CONTRACTS
from .exceptions import ArtifactWriteError
from .paths import FrontendPaths
from .store import DeploymentRecordStore
from .types import DeploymentRecord, FrontendConfigSnapshot, NetworkDescriptor, SyncReport

logger = logging.getLogger(__name__)

INDENT = "    "

_NETWORKS_ANCHOR = re.compile(r"\bNETWORKS\s*=\s*\{")
_IDENTIFIER = re.compile(r"[\w$]+")
_BARE_VALUE = re.compile(r"[^,}\s]+")

_FRESH_CONFIG = """// Network and contract addresses of the ARANDU ecosystem.
// Blocks below are rewritten by arandu-deploy.

export const NETWORKS = {
};
"""


# ---------------------------------------------------------------------------
# Config source blocks
# ---------------------------------------------------------------------------


def _marker(label: str) -> re.Pattern:
    return re.compile(rf"(?<![\w$]){re.escape(label)}\s*:\s*\{{")


def _matching_brace(content: str, open_index: int) -> int:
    """
    Index of the brace closing the one at open_index.

    Braces inside string literals and comments are ignored.

    Raises:
        ValueError: If the block is never closed
    """
    depth = 0
    quote: Optional[str] = None
    i = open_index
    while i < len(content):
        char = content[i]
        if quote:
            if char == "\\":
                i += 1
            elif char == quote:
                quote = None
        elif content.startswith(("//", "/*"), i):
            i = _skip_blank(content, i)
            continue
        elif char in "'\"`":
            quote = char
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    raise ValueError(f"Unbalanced braces after offset {open_index}")


def _line_indent(content: str, index: int) -> str:
    line_start = content.rfind("\n", 0, index) + 1
    return re.match(r"[ \t]*", content[line_start:]).group()


def _block_span(content: str, label: str) -> Optional[Tuple[int, int, str]]:
    """
    (open brace, close brace, indent) of a network's block.

    The block is searched inside the NETWORKS object; sources without one
    are searched from the top. Blocks of the same label in other objects
    (owner or contract tables) are never matched.

    Raises:
        ValueError: If the NETWORKS object or the block is unbalanced
    """
    start, end = 0, len(content)
    anchor = _NETWORKS_ANCHOR.search(content)
    if anchor is not None:
        start = anchor.end() - 1
        end = _matching_brace(content, start)

    match = _marker(label).search(content, start, end)
    if match is None:
        return None
    open_index = match.end() - 1
    return open_index, _matching_brace(content, open_index), _line_indent(content, match.start())


def render_block_body(snapshot: FrontendConfigSnapshot, indent: str) -> str:
    """
    Render the inside of a network block, one entry per line.

    Args:
        snapshot: Addresses to render
        indent: Indentation of the line holding the block marker

    Returns:
        Body text without the surrounding braces
    """
    inner = indent + INDENT
    lines = [f"{inner}name: '{snapshot.label.capitalize()}'"]
    if snapshot.rpc_url:
        lines.append(f"{inner}rpcUrl: '{snapshot.rpc_url}'")
    for role in ROLE_CONTRACTS:
        if role in snapshot.contracts:
            lines.append(f'{inner}{role}: "{snapshot.contracts[role]}"')

    verifiers: Dict[str, str] = snapshot.contracts.get("VERIFIERS", {})
    if verifiers:
        nested = [
            f'{inner}{INDENT}{kind}: "{verifiers[kind]}"'
            for kind in VERIFIER_CONTRACTS
            if kind in verifiers
        ]
        lines.append(f"{inner}VERIFIERS: {{\n" + ",\n".join(nested) + f"\n{inner}}}")

    return ",\n".join(lines)


def render_config_block(snapshot: FrontendConfigSnapshot, indent: str = INDENT) -> str:
    """Render a complete `LABEL: { ... }` block."""
    body = render_block_body(snapshot, indent)
    return f"{snapshot.label}: {{\n{body}\n{indent}}}"


def replace_config_block(content: str, snapshot: FrontendConfigSnapshot) -> str:
    """
    Rewrite the snapshot's network block in a config source.

    Everything outside the block is left byte-identical. If the network has
    no block yet, one is inserted at the start of the NETWORKS object.

    Args:
        content: Config source text
        snapshot: Addresses to write

    Returns:
        Updated source text

    Raises:
        ArtifactWriteError: If the source has neither a block for the network
            nor a NETWORKS object, or a block is unbalanced
    """
    try:
        span = _block_span(content, snapshot.label)
    except ValueError as e:
        raise ArtifactWriteError(f"Malformed config source around {snapshot.label}: {e}") from e

    if span is None:
        anchor = _NETWORKS_ANCHOR.search(content)
        if anchor is None:
            raise ArtifactWriteError(
                f"No {snapshot.label} block and no NETWORKS object to insert one into"
            )
        block = render_config_block(snapshot, INDENT)
        return content[: anchor.end()] + f"\n{INDENT}{block}," + content[anchor.end():]

    open_index, close_index, indent = span
    body = render_block_body(snapshot, indent)
    return content[: open_index + 1] + f"\n{body}\n{indent}" + content[close_index:]


def _skip_blank(text: str, i: int) -> int:
    while i < len(text):
        if text[i].isspace():
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = len(text) if end == -1 else end + 1
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = len(text) if end == -1 else end + 2
        else:
            break
    return i


def _parse_string(text: str, i: int) -> Tuple[str, int]:
    quote = text[i]
    i += 1
    chars = []
    while text[i] != quote:
        if text[i] == "\\":
            i += 1
        chars.append(text[i])
        i += 1
    return "".join(chars), i + 1


def _parse_object(text: str, i: int) -> Tuple[Dict[str, Any], int]:
    """Parse a JS object literal of strings, scalars and nested objects."""
    result: Dict[str, Any] = {}
    i = _skip_blank(text, i + 1)
    while text[i] != "}":
        if text[i] in "'\"":
            key, i = _parse_string(text, i)
        else:
            match = _IDENTIFIER.match(text, i)
            key, i = match.group(), match.end()
        i = _skip_blank(text, i)
        i = _skip_blank(text, i + 1)  # colon

        if text[i] == "{":
            value, i = _parse_object(text, i)
        elif text[i] in "'\"`":
            value, i = _parse_string(text, i)
        else:
            match = _BARE_VALUE.match(text, i)
            raw, i = match.group(), match.end()
            try:
                value = json.loads(raw)
            except ValueError:
                # Identifiers and expressions are kept as source text
                value = raw
        result[key] = value

        i = _skip_blank(text, i)
        if text[i] == ",":
            i = _skip_blank(text, i + 1)
    return result, i + 1


def read_config_block(content: str, label: str) -> Optional[Dict[str, Any]]:
    """
    Parse a network's block from a config source.

    Args:
        content: Config source text
        label: Network label, e.g. "FUJI"

    Returns:
        Mapping of the block's entries (nested objects as dicts),
        or None if the source has no block for the label

    Raises:
        ValueError: If the block cannot be parsed
    """
    try:
        span = _block_span(content, label)
        if span is None:
            return None
        block, _ = _parse_object(content, span[0])
    except (IndexError, AttributeError, ValueError) as e:
        raise ValueError(f"Cannot parse {label} block: {e}") from e
    return block


# ---------------------------------------------------------------------------
# Synchronizer
# ---------------------------------------------------------------------------


class FrontendConfigSynchronizer:
    """
    Projects the record store onto the frontend's configuration artifacts.

    Artifacts written for a network:
    - the network block of the config source (arandu-config.js)
    - role address variables in the frontend .env file
    - one ABI file per deployed contract
    - a deployedContracts.json bundle with every record
    - a copy of decryption_keys.json when the store has one
    """

    def __init__(
        self,
        store: DeploymentRecordStore,
        paths: FrontendPaths,
        env_prefix: str = DEFAULT_ENV_PREFIX,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.store = store
        self.paths = paths
        self.env_prefix = env_prefix
        self._clock = clock

    def build_snapshot(self, network: NetworkDescriptor) -> FrontendConfigSnapshot:
        """
        Map a network's records to frontend roles.

        Roles whose contract has no record are omitted.
        """
        by_name = {r.contract_name: r for r in self.store.list(network.name)}

        contracts: Dict[str, Any] = {}
        for role, contract_name in ROLE_CONTRACTS.items():
            if contract_name in by_name:
                contracts[role] = by_name[contract_name].address

        verifiers = {
            kind: by_name[contract_name].address
            for kind, contract_name in VERIFIER_CONTRACTS.items()
            if contract_name in by_name
        }
        if verifiers:
            contracts["VERIFIERS"] = verifiers

        return FrontendConfigSnapshot(
            network=network.name,
            label=network.label,
            chain_id=network.chain_id,
            rpc_url=None if network.rpc_url_private else network.rpc_url,
            contracts=contracts,
        )

    def sync(self, network: NetworkDescriptor) -> SyncReport:
        """
        Write every frontend artifact for a network.

        A failing artifact is recorded in the report and does not stop the
        others.

        Args:
            network: Network whose records are projected

        Returns:
            SyncReport with written paths and per-artifact failures
        """
        records = self.store.list(network.name)
        snapshot = self.build_snapshot(network)
        report = SyncReport(network=network.name, snapshot=snapshot)

        if not records:
            logger.warning("No deployment records for %s; writing network entries only", network.name)

        steps = [
            ("config", lambda: self.write_config(snapshot)),
            ("env", lambda: self.write_env(snapshot)),
            ("abis", lambda: self.write_abis(records)),
            ("bundle", lambda: self.write_bundle(network, records)),
            ("decryption_keys", lambda: self.copy_decryption_keys(network)),
        ]
        for kind, step in steps:
            try:
                report.written.extend(str(p) for p in step())
            except (ArtifactWriteError, OSError, ValueError) as e:
                error = e if isinstance(e, ArtifactWriteError) else ArtifactWriteError(str(e))
                logger.error("Failed to write %s artifact for %s: %s", kind, network.name, error)
                report.failures[kind] = str(error)

        logger.info(
            "Synchronized %s: %d files written, %d failures",
            network.name,
            len(report.written),
            len(report.failures),
        )
        return report

    def write_config(self, snapshot: FrontendConfigSnapshot) -> List[Path]:
        path = self.paths.config_file
        if path.exists():
            content = path.read_text(encoding="utf-8")
        else:
            logger.info("Creating frontend config %s", path)
            path.parent.mkdir(parents=True, exist_ok=True)
            content = _FRESH_CONFIG

        path.write_text(replace_config_block(content, snapshot), encoding="utf-8")
        return [path]

    def write_env(self, snapshot: FrontendConfigSnapshot) -> List[Path]:
        path = self.paths.env_file
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch()

        values = {
            f"{self.env_prefix}_{snapshot.label}_{role}": address
            for role, address in snapshot.flat_roles().items()
        }
        values[f"{self.env_prefix}_NETWORK"] = snapshot.label
        values[f"{self.env_prefix}_CHAIN_ID"] = str(snapshot.chain_id)

        for key, value in values.items():
            set_key(path, key, value, quote_mode="never")
        return [path]

    def write_abis(self, records: List[DeploymentRecord]) -> List[Path]:
        written = []
        for record in records:
            path = self.paths.abis_dir / f"{record.contract_name}.json"
            _write_json(
                path,
                {"contractName": record.contract_name, "address": record.address, "abi": record.abi},
            )
            written.append(path)
        return written

    def write_bundle(self, network: NetworkDescriptor, records: List[DeploymentRecord]) -> List[Path]:
        if not records:
            return []
        path = self.paths.bundle_file(network.name)
        contracts = {}
        for record in records:
            entry = record.to_json()
            entry.pop("contractName")
            contracts[record.contract_name] = entry

        _write_json(
            path,
            {
                "network": network.name,
                "chainId": network.chain_id,
                "generatedAt": self._clock().isoformat(),
                "contracts": contracts,
            },
        )
        return [path]

    def copy_decryption_keys(self, network: NetworkDescriptor) -> List[Path]:
        candidates = [
            self.store.network_dir(network.name) / DECRYPTION_KEYS_FILE,
            self.store.root / DECRYPTION_KEYS_FILE,
        ]
        for candidate in candidates:
            if candidate.exists():
                dest = self.paths.contracts_dir / DECRYPTION_KEYS_FILE
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(candidate, dest)
                logger.info("Copied %s to %s", candidate, dest)
                return [dest]
        logger.debug("No %s for %s", DECRYPTION_KEYS_FILE, network.name)
        return []


def _write_json(path: Path, data: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
        f.write("\n")
