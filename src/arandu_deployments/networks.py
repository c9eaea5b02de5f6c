"""Network resolution for arandu-deployments library."""

import os
from typing import Any, Dict, List, Mapping, Optional

from .constants import LIVE_CONFIRMATIONS, LOCAL_CONFIRMATIONS, NETWORK_CONFIG
from .exceptions import MissingCredentialError, UnknownNetworkError
from .types import NetworkDescriptor


def available_networks() -> List[str]:
    """
    Get the names of all configured networks.

    Returns:
        Lowercase network names in configuration order
    """
    return list(NETWORK_CONFIG.keys())


def network_for_chain_id(chain_id: int) -> Optional[str]:
    """
    Map a chain id to the first configured network using it.

    Args:
        chain_id: Numeric chain id reported by a node

    Returns:
        Network name, or None if no configured network matches
    """
    for name, config in NETWORK_CONFIG.items():
        if config["chain_id"] == chain_id:
            return name
    return None


def resolve_network(
    name: str, env: Optional[Mapping[str, str]] = None
) -> NetworkDescriptor:
    """
    Resolve a logical network name to its descriptor.

    Args:
        name: Network name, case-insensitive ("fuji", "FUJI", ...)
        env: Environment mapping for API keys and RPC overrides
             (defaults to os.environ)

    Returns:
        NetworkDescriptor for the network

    Raises:
        UnknownNetworkError: If the network is not configured
        MissingCredentialError: If the RPC endpoint needs an API key that is absent
    """
    if env is None:
        env = os.environ

    key = str(name).strip().lower()
    if key not in NETWORK_CONFIG:
        raise UnknownNetworkError(
            f"Unknown network '{name}'. Available: {', '.join(available_networks())}"
        )

    config: Dict[str, Any] = NETWORK_CONFIG[key]
    label = config["label"]

    # Explicit override wins over the configured endpoint
    rpc_url = env.get(f"{label}_RPC_URL")
    rpc_url_private = False
    if not rpc_url:
        rpc_url = config["rpc_url"]
        api_key_env = config.get("rpc_api_key_env")
        if api_key_env:
            api_key = env.get(api_key_env)
            if not api_key:
                raise MissingCredentialError(
                    f"{api_key_env} required for network '{key}'"
                )
            rpc_url = rpc_url.format(api_key=api_key)
            rpc_url_private = True

    explorer_api_key = None
    if config.get("explorer_api_key_env"):
        explorer_api_key = env.get(config["explorer_api_key_env"]) or None

    live = bool(config["live"])
    return NetworkDescriptor(
        name=key,
        label=label,
        chain_id=config["chain_id"],
        chain_name=config["chain_name"],
        rpc_url=rpc_url,
        explorer_url=config["block_explorer_url"],
        currency_symbol=config["currency_symbol"],
        currency_name=config["currency_name"],
        live=live,
        confirmations=LIVE_CONFIRMATIONS if live else LOCAL_CONFIRMATIONS,
        explorer_api_url=config.get("explorer_api_url"),
        explorer_api_key=explorer_api_key,
        gas_price=config.get("gas_price"),
        gas_limit=config.get("gas_limit"),
        rpc_url_private=rpc_url_private,
    )
