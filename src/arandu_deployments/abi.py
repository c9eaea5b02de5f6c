"""ABI encoding helpers for arandu-deployments library."""

from typing import Any, Dict, List, Optional, Sequence

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError
from eth_utils import decode_hex, encode_hex, keccak


def abi_type(param: Dict[str, Any]) -> str:
    """
    Canonical type string of an ABI parameter.

    Tuples are expanded from their components, keeping array suffixes:
    {"type": "tuple[]", "components": [address, uint256]} -> "(address,uint256)[]"
    """
    type_str = param["type"]
    if type_str.startswith("tuple"):
        inner = ",".join(abi_type(c) for c in param.get("components", []))
        return f"({inner}){type_str[len('tuple'):]}"
    return type_str


def _normalize(param: Dict[str, Any], value: Any) -> Any:
    """Convert JSON-friendly values into what eth-abi expects."""
    type_str = param["type"]

    # Arrays (including arrays of tuples)
    if type_str.endswith("]"):
        element = dict(param, type=type_str[: type_str.rindex("[")])
        return [_normalize(element, v) for v in value]

    if type_str == "tuple":
        components = param.get("components", [])
        if isinstance(value, dict):
            return tuple(_normalize(c, value[c["name"]]) for c in components)
        return tuple(_normalize(c, v) for c, v in zip(components, value))

    if type_str.startswith("bytes") and isinstance(value, str):
        return decode_hex(value)

    return value


def find_constructor(abi: Sequence[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    for item in abi:
        if item.get("type") == "constructor":
            return item
    return None


def find_function(
    abi: Sequence[Dict[str, Any]], name: str, arg_count: Optional[int] = None
) -> Dict[str, Any]:
    """
    Find a function entry by name (and argument count for overloads).

    Raises:
        KeyError: If no matching function exists in the ABI
    """
    for item in abi:
        if item.get("type") != "function" or item.get("name") != name:
            continue
        if arg_count is None or len(item.get("inputs", [])) == arg_count:
            return item
    raise KeyError(f"Function '{name}' not found in ABI")


def function_signature(fn_abi: Dict[str, Any]) -> str:
    types = ",".join(abi_type(p) for p in fn_abi.get("inputs", []))
    return f"{fn_abi['name']}({types})"


def function_selector(fn_abi: Dict[str, Any]) -> bytes:
    return keccak(text=function_signature(fn_abi))[:4]


def encode_arguments(inputs: Sequence[Dict[str, Any]], args: Sequence[Any]) -> bytes:
    """
    ABI-encode arguments against a list of input parameters.

    Raises:
        ValueError: If the argument count or a value does not fit the inputs
    """
    if len(inputs) != len(args):
        raise ValueError(f"Expected {len(inputs)} arguments, got {len(args)}")
    if not inputs:
        return b""
    types = [abi_type(p) for p in inputs]
    signature = ",".join(types)
    try:
        values = [_normalize(p, a) for p, a in zip(inputs, args)]
        return encode(types, values)
    except (EncodingError, KeyError, TypeError) as e:
        raise ValueError(f"Cannot encode arguments as ({signature}): {e}") from e


def encode_constructor_args(abi: Sequence[Dict[str, Any]], args: Sequence[Any]) -> bytes:
    constructor = find_constructor(abi)
    inputs = constructor.get("inputs", []) if constructor else []
    return encode_arguments(inputs, args)


def encode_function_call(abi: Sequence[Dict[str, Any]], name: str, args: Sequence[Any]) -> str:
    """
    Build calldata for a function call.

    Returns:
        0x-prefixed hex calldata (selector + encoded arguments)
    """
    fn_abi = find_function(abi, name, len(args))
    return encode_hex(function_selector(fn_abi) + encode_arguments(fn_abi.get("inputs", []), args))


def decode_function_result(abi: Sequence[Dict[str, Any]], name: str, data: str) -> Any:
    """
    Decode the return data of a call.

    Returns:
        None for no outputs, the value for one output, a tuple otherwise

    Raises:
        ValueError: If the return data does not match the outputs
    """
    fn_abi = find_function(abi, name)
    outputs: List[Dict[str, Any]] = fn_abi.get("outputs", [])
    if not outputs:
        return None
    types = [abi_type(o) for o in outputs]
    signature = ",".join(types)
    try:
        values = decode(types, decode_hex(data))
    except DecodingError as e:
        raise ValueError(f"Cannot decode {name} result as ({signature}): {e}") from e
    if len(values) == 1:
        return values[0]
    return values
