"""Conversion between caller JSON values and ABI-typed values.

Two flavours exist because the two endpoints accept arguments differently:

* ``convert_argument`` is lenient and used by the read endpoint, whose
  arguments arrive as a positional JSON array.
* ``validate_and_format_args`` is strict and used by the write endpoint,
  whose arguments arrive as a JSON object keyed by parameter name. A wrong
  JSON type there is rejected instead of coerced.

``format_result`` renders decoded values the way the read endpoint returns
them: every value as a string.
"""

import json
import math
import re
from typing import Any, Sequence

from web3 import Web3

from ensis_gateway.exceptions import ArgumentError
from ensis_gateway.logging_config import get_logger
from ensis_gateway.validators import is_valid_address

logger = get_logger(__name__)

_INT_TYPE_RE = re.compile(r"^u?int(\d*)$")
_BYTES_TYPE_RE = re.compile(r"^bytes(\d*)$")
_ARRAY_TYPE_RE = re.compile(r"^(.+)\[(\d*)\]$")

# Largest magnitude a JSON number carries without losing integer precision
MAX_SAFE_INTEGER = 2**53 - 1


def is_integer_type(abi_type: str) -> bool:
    return bool(_INT_TYPE_RE.match(abi_type))


def split_array_type(abi_type: str) -> tuple[str, int | None] | None:
    """Return ``(element_type, fixed_length)`` for array types, else None.

    >>> split_array_type("uint256[]")
    ('uint256', None)
    >>> split_array_type("address[2][]")
    ('address[2]', None)
    """
    match = _ARRAY_TYPE_RE.match(abi_type)
    if not match:
        return None
    element_type, size = match.groups()
    return element_type, int(size) if size else None


def to_integer(value: Any) -> int:
    """Parse a JSON integer, integral float, decimal string or 0x hex string.

    Raises:
        TypeError: For booleans, None and containers.
        ValueError: For non-integral or non-numeric input, and for floats
            too large to hold an exact integer (pass those as strings).
    """
    if isinstance(value, bool):
        raise TypeError("boolean is not an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not (math.isfinite(value) and value.is_integer()):
            raise ValueError(f"{value} is not an integer")
        if abs(value) > MAX_SAFE_INTEGER:
            raise ValueError(f"{value} exceeds the safe integer range")
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        negative = text.startswith("-")
        digits = text[1:] if negative else text
        if digits[:2].lower() == "0x":
            number = int(digits[2:], 16)
        elif digits.isascii() and digits.isdigit():
            number = int(digits)
        else:
            raise ValueError(f"{value!r} is not an integer")
        return -number if negative else number
    raise TypeError(f"{type(value).__name__} is not an integer")


def to_bytes(value: Any) -> bytes:
    """Parse a 0x-prefixed hex string (or pass bytes through)."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str) and value[:2].lower() == "0x":
        return bytes.fromhex(value[2:])
    raise ValueError(f"{value!r} is not a 0x-prefixed hex string")


def js_truthy(value: Any) -> bool:
    """Truthiness of a JSON value the way a JavaScript caller expects it.

    Only ``false``, ``0``, ``""`` and ``null`` are false; empty arrays and
    objects are true.
    """
    if value is None or value is False:
        return False
    if isinstance(value, (int, float)):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True


def to_js_string(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list):
        return ",".join("" if v is None else to_js_string(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


def convert_argument(value: Any, abi_type: str) -> Any:
    """Coerce one JSON value into the Python value eth_abi expects for abi_type.

    Unknown types are passed through unchanged and logged.

    Raises:
        ArgumentError: If the value cannot represent abi_type.
    """
    if is_integer_type(abi_type):
        try:
            return to_integer(value)
        except (TypeError, ValueError) as e:
            raise ArgumentError(
                f"Invalid {abi_type} value: {value!r}",
                ArgumentError.ERR_INVALID_INTEGER,
            ) from e

    if abi_type == "address":
        if not is_valid_address(value):
            raise ArgumentError(
                f"Invalid address: {value}", ArgumentError.ERR_INVALID_ADDRESS
            )
        return Web3.to_checksum_address(value)

    if abi_type == "bool":
        return js_truthy(value)

    if abi_type == "string":
        return to_js_string(value)

    if _BYTES_TYPE_RE.match(abi_type):
        try:
            return to_bytes(value)
        except ValueError as e:
            raise ArgumentError(
                f"Invalid {abi_type} value: {value!r}",
                ArgumentError.ERR_INVALID_BYTES,
                hint="Byte values must be 0x-prefixed hex strings",
            ) from e

    array = split_array_type(abi_type)
    if array and isinstance(value, list):
        element_type, size = array
        if size is not None and len(value) != size:
            raise ArgumentError(
                f"Invalid {abi_type} value: expected {size} elements, got {len(value)}",
                ArgumentError.ERR_INVALID_ARRAY,
            )
        return [convert_argument(item, element_type) for item in value]

    logger.warning(f"Unhandled type: {abi_type}. Passing value as-is.")
    return value


def validate_and_format_args(
    arg_types: Sequence[str], arg_names: Sequence[str], args: dict[str, Any]
) -> list[Any]:
    """Validate named arguments against the function's parameter list.

    Args:
        arg_types: ABI types, in parameter order.
        arg_names: Parameter names, same order and length as arg_types.
        args: Caller-supplied JSON object.

    Returns:
        Values in parameter order, ready for ABI encoding.

    Raises:
        ArgumentError: On the first missing or mistyped argument.
    """
    formatted: list[Any] = []

    for abi_type, name in zip(arg_types, arg_names):
        if name not in args:
            raise ArgumentError(
                f"Missing argument: {name}", ArgumentError.ERR_MISSING_ARGUMENT
            )
        value = args[name]

        if abi_type == "address":
            if not is_valid_address(value):
                raise ArgumentError(
                    f"Invalid address for argument {name}",
                    ArgumentError.ERR_INVALID_ADDRESS,
                )
            formatted.append(Web3.to_checksum_address(value))
        elif is_integer_type(abi_type):
            try:
                formatted.append(to_integer(value))
            except (TypeError, ValueError) as e:
                raise ArgumentError(
                    f"Invalid {abi_type} for argument {name}",
                    ArgumentError.ERR_INVALID_INTEGER,
                ) from e
        elif abi_type == "bool":
            if not isinstance(value, bool):
                raise ArgumentError(
                    f"Invalid boolean for argument {name}",
                    ArgumentError.ERR_INVALID_BOOL,
                )
            formatted.append(value)
        elif abi_type == "string":
            if not isinstance(value, str):
                raise ArgumentError(
                    f"Invalid string for argument {name}",
                    ArgumentError.ERR_INVALID_STRING,
                )
            formatted.append(value)
        elif _BYTES_TYPE_RE.match(abi_type):
            try:
                formatted.append(to_bytes(value))
            except ValueError as e:
                raise ArgumentError(
                    f"Invalid {abi_type} for argument {name}",
                    ArgumentError.ERR_INVALID_BYTES,
                ) from e
        elif split_array_type(abi_type):
            if not isinstance(value, list):
                raise ArgumentError(
                    f"Invalid array for argument {name}",
                    ArgumentError.ERR_INVALID_ARRAY,
                )
            formatted.append(convert_argument(value, abi_type))
        else:
            logger.warning(f"Unhandled type {abi_type} for argument {name}")
            formatted.append(value)

    return formatted


def stringify_value(value: Any, abi_type: str) -> str:
    """Render a decoded ABI value as a string."""
    array = split_array_type(abi_type)
    if array and isinstance(value, (list, tuple)):
        return ",".join(stringify_value(item, array[0]) for item in value)
    if abi_type == "address" and isinstance(value, str):
        return Web3.to_checksum_address(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return ",".join(stringify_value(item, "") for item in value)
    return str(value)


def format_result(
    arg_types: Sequence[str], arg_names: Sequence[str], decoded: Sequence[Any]
) -> dict[str, str]:
    """Map decoded values onto parameter names, stringifying each one."""
    return {
        name: stringify_value(value, abi_type)
        for abi_type, name, value in zip(arg_types, arg_names, decoded)
    }
