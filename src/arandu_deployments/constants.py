"""Configuration constants for arandu-deployments library."""

# Bucket used by the deployment toolchain when the network name could not be
# determined at deployment time
PLACEHOLDER_NETWORK = "unknown"

# Default prefix for frontend environment variables
DEFAULT_ENV_PREFIX = "REACT_APP"

# Per-network map of test wallet address -> decryption key
DECRYPTION_KEYS_FILE = "decryption_keys.json"

# Confirmation depth by network kind
LOCAL_CONFIRMATIONS = 1
LIVE_CONFIRMATIONS = 3

# Contract names as compiled by the Hardhat toolchain
REGISTRATION_VERIFIER = "RegistrationCircuitGroth16Verifier"
MINT_VERIFIER = "MintCircuitGroth16Verifier"
TRANSFER_VERIFIER = "TransferCircuitGroth16Verifier"
BURN_VERIFIER = "BurnCircuitGroth16Verifier"
WITHDRAW_VERIFIER = "WithdrawCircuitGroth16Verifier"
REGISTRAR = "Registrar"
BABY_JUBJUB = "BabyJubJub"
ENCRYPTED_ERC = "EncryptedERC"
CERTIFICATES = "AranduCertificate"

# Verifier kind (frontend role) -> contract name
VERIFIER_CONTRACTS = {
    "REGISTRATION": REGISTRATION_VERIFIER,
    "MINT": MINT_VERIFIER,
    "TRANSFER": TRANSFER_VERIFIER,
    "BURN": BURN_VERIFIER,
    "WITHDRAW": WITHDRAW_VERIFIER,
}

# Top-level frontend role -> contract name
ROLE_CONTRACTS = {
    "CERTIFICATES": CERTIFICATES,
    "ANDU_TOKEN": ENCRYPTED_ERC,
    "REGISTRAR": REGISTRAR,
}

# Parameters of the ANDU token (EncryptedERC standalone mode)
ANDU_TOKEN_NAME = "Arandu Token"
ANDU_TOKEN_SYMBOL = "ANDU"
ANDU_TOKEN_DECIMALS = 18

# Network configuration. RPC URLs containing {api_key} need the environment
# variable named by rpc_api_key_env.
NETWORK_CONFIG = {
    "localhost": {
        "label": "LOCALHOST",
        "chain_id": 31337,
        "chain_name": "Localhost",
        "rpc_url": "http://127.0.0.1:8545",
        "block_explorer_url": "http://localhost:8545",
        "currency_name": "Ether",
        "currency_symbol": "ETH",
        "live": False,
    },
    "hardhat": {
        "label": "HARDHAT",
        "chain_id": 31337,
        "chain_name": "Hardhat",
        "rpc_url": "http://127.0.0.1:8545",
        "block_explorer_url": "http://localhost:8545",
        "currency_name": "Ether",
        "currency_symbol": "ETH",
        "live": False,
    },
    "sepolia": {
        "label": "SEPOLIA",
        "chain_id": 11155111,
        "chain_name": "Ethereum Sepolia",
        "rpc_url": "https://eth-sepolia.g.alchemy.com/v2/{api_key}",
        "rpc_api_key_env": "ALCHEMY_API_KEY",
        "block_explorer_url": "https://sepolia.etherscan.io",
        "explorer_api_url": "https://api.etherscan.io/v2/api",
        "explorer_api_key_env": "ETHERSCAN_V2_API_KEY",
        "currency_name": "Ether",
        "currency_symbol": "ETH",
        "live": True,
        "gas_price": 20_000_000_000,
        "gas_limit": 6_000_000,
    },
    "fuji": {
        "label": "FUJI",
        "chain_id": 43113,
        "chain_name": "Avalanche Fuji",
        "rpc_url": "https://api.avax-test.network/ext/bc/C/rpc",
        "block_explorer_url": "https://testnet.snowtrace.io",
        "explorer_api_url": "https://api-testnet.snowtrace.io/api",
        "explorer_api_key_env": "SNOWTRACE_API_KEY",
        "currency_name": "Avalanche",
        "currency_symbol": "AVAX",
        "live": True,
        "gas_price": 25_000_000_000,
        "gas_limit": 8_000_000,
    },
    "avalanche": {
        "label": "AVALANCHE",
        "chain_id": 43114,
        "chain_name": "Avalanche C-Chain",
        "rpc_url": "https://api.avax.network/ext/bc/C/rpc",
        "block_explorer_url": "https://snowtrace.io",
        "explorer_api_url": "https://api.snowtrace.io/api",
        "explorer_api_key_env": "SNOWTRACE_API_KEY",
        "currency_name": "Avalanche",
        "currency_symbol": "AVAX",
        "live": True,
        "gas_price": 25_000_000_000,
        "gas_limit": 8_000_000,
    },
}
