"""Deployment graph of the ARANDU contract ecosystem."""

import heapq
from typing import Any, Dict, List, Sequence, Set

from .constants import (
    ANDU_TOKEN_DECIMALS,
    ANDU_TOKEN_NAME,
    ANDU_TOKEN_SYMBOL,
    BABY_JUBJUB,
    BURN_VERIFIER,
    CERTIFICATES,
    ENCRYPTED_ERC,
    MINT_VERIFIER,
    REGISTRAR,
    REGISTRATION_VERIFIER,
    TRANSFER_VERIFIER,
    WITHDRAW_VERIFIER,
)
from .exceptions import DeploymentError
from .types import DEPLOYER, AddressOf, ContractDeploymentSpec


def _collect_references(value: Any, found: Set[str]) -> None:
    if isinstance(value, AddressOf):
        found.add(value.contract_name)
    elif isinstance(value, dict):
        for item in value.values():
            _collect_references(item, found)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _collect_references(item, found)


def dependencies_of(spec: ContractDeploymentSpec) -> Set[str]:
    """
    Names of the specs a spec depends on.

    Dependencies come from AddressOf references anywhere in the constructor
    arguments and from linked libraries.
    """
    found: Set[str] = set()
    _collect_references(spec.args, found)
    found.update(spec.libraries.values())
    return found


def topological_order(
    specs: Sequence[ContractDeploymentSpec],
) -> List[ContractDeploymentSpec]:
    """
    Order specs so every spec comes after the specs it depends on.

    Ties are broken by declaration order, so an already valid sequence is
    returned unchanged.

    Args:
        specs: Deployment specs in declaration order

    Returns:
        Specs in deployment order

    Raises:
        DeploymentError: On duplicate names, references to undeclared
            specs, or dependency cycles
    """
    position: Dict[str, int] = {}
    for index, spec in enumerate(specs):
        if spec.contract_name in position:
            raise DeploymentError(f"Duplicate deployment spec: {spec.contract_name}")
        position[spec.contract_name] = index

    pending: Dict[str, Set[str]] = {}
    dependents: Dict[str, List[str]] = {name: [] for name in position}
    for spec in specs:
        deps = dependencies_of(spec)
        unknown = sorted(deps - position.keys())
        if unknown:
            raise DeploymentError(
                f"{spec.contract_name} references undeclared contracts: {', '.join(unknown)}"
            )
        pending[spec.contract_name] = set(deps)
        for dep in deps:
            dependents[dep].append(spec.contract_name)

    # Heap of declaration positions of specs with no pending dependencies
    ready = [position[spec.contract_name] for spec in specs if not pending[spec.contract_name]]
    heapq.heapify(ready)
    ordered: List[ContractDeploymentSpec] = []
    while ready:
        spec = specs[heapq.heappop(ready)]
        ordered.append(spec)
        for dependent in dependents[spec.contract_name]:
            pending[dependent].discard(spec.contract_name)
            if not pending[dependent]:
                heapq.heappush(ready, position[dependent])

    if len(ordered) != len(specs):
        stuck = sorted(name for name, deps in pending.items() if deps)
        raise DeploymentError(f"Dependency cycle between: {', '.join(stuck)}")

    return ordered


def arandu_ecosystem() -> List[ContractDeploymentSpec]:
    """
    Deployment specs of the full ARANDU ecosystem.

    Five Groth16 verifiers, the Registrar, the BabyJubJub library, the
    EncryptedERC token in standalone mode, and the certificate NFT.
    """
    verifiers = [
        ContractDeploymentSpec(name)
        for name in (
            REGISTRATION_VERIFIER,
            MINT_VERIFIER,
            WITHDRAW_VERIFIER,
            TRANSFER_VERIFIER,
            BURN_VERIFIER,
        )
    ]
    return verifiers + [
        ContractDeploymentSpec(REGISTRAR, args=[AddressOf(REGISTRATION_VERIFIER)]),
        ContractDeploymentSpec(BABY_JUBJUB),
        ContractDeploymentSpec(
            ENCRYPTED_ERC,
            args=[
                {
                    "registrar": AddressOf(REGISTRAR),
                    "isConverter": False,
                    "name": ANDU_TOKEN_NAME,
                    "symbol": ANDU_TOKEN_SYMBOL,
                    "decimals": ANDU_TOKEN_DECIMALS,
                    "mintVerifier": AddressOf(MINT_VERIFIER),
                    "withdrawVerifier": AddressOf(WITHDRAW_VERIFIER),
                    "transferVerifier": AddressOf(TRANSFER_VERIFIER),
                    "burnVerifier": AddressOf(BURN_VERIFIER),
                }
            ],
            libraries={"BabyJubJub": BABY_JUBJUB},
        ),
        ContractDeploymentSpec(CERTIFICATES, args=[DEPLOYER], reuse_existing=True),
    ]
