"""Input validation and sanitization utilities."""

import base64
import binascii
import re
from urllib.parse import urlparse

from web3 import Web3

from ensis_gateway.exceptions import (
    ArgumentError,
    EncryptionError,
    RequestError,
)

_RPC_URL_RE = re.compile(r"^https?://[^\s/]+(/\S*)?$")
_PRIVATE_KEY_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")
_FUNCTION_NAME_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

PATH_FORMAT_HINT = "Expected: /<contract-address>/<function-name>"


def is_valid_address(address: object) -> bool:
    """Return True for a 0x-prefixed 20-byte hex address (EIP-55 if mixed case)."""
    if not isinstance(address, str):
        return False
    return bool(Web3.is_address(address))


def is_valid_rpc_url(url: object) -> bool:
    """Return True if url looks like an http(s) JSON-RPC endpoint."""
    return isinstance(url, str) and bool(_RPC_URL_RE.match(url))


def validate_address(address: str, param_name: str = "address") -> str:
    """Validate and return checksum address.

    Args:
        address: Ethereum address to validate.
        param_name: Parameter name for error messages.

    Returns:
        Checksummed address.

    Raises:
        ArgumentError: If address is invalid.
    """
    if not is_valid_address(address):
        raise ArgumentError(
            f"Invalid {param_name}: {mask_address(str(address))}",
            ArgumentError.ERR_INVALID_ADDRESS,
            hint="Address must be a valid 0x-prefixed hex string of 40 characters",
        )
    return Web3.to_checksum_address(address)


def parse_request_path(path: str) -> tuple[str, str]:
    """Split a request path into ``(contract_address, function_name)``.

    Empty segments are ignored, so ``/0xabc/get/`` and ``0xabc//get`` are
    both accepted. The address is returned checksummed.

    Raises:
        RequestError: If the path does not have exactly two segments or the
            function name is not a valid identifier.
        ArgumentError: If the first segment is not an address.
    """
    parts = [part for part in path.split("/") if part]
    if len(parts) != 2:
        raise RequestError(
            f"Invalid URL format. {PATH_FORMAT_HINT}",
            RequestError.ERR_INVALID_PATH,
            hint=PATH_FORMAT_HINT,
        )

    contract_address, function_name = parts
    if not _FUNCTION_NAME_RE.match(function_name):
        raise RequestError(
            f"Invalid function name: {function_name}",
            RequestError.ERR_INVALID_PATH,
            hint=PATH_FORMAT_HINT,
        )
    return validate_address(contract_address, "contract address"), function_name


def validate_private_key(private_key: str, encrypted: bool) -> str:
    """Validate private key format.

    Args:
        private_key: Private key (hex) or Fernet token (base64).
        encrypted: Whether the key is expected to be encrypted.

    Returns:
        The key, 0x-prefixed when it is a plain hex key.

    Raises:
        EncryptionError: If key format is invalid.
    """
    if encrypted:
        try:
            base64.b64decode(private_key, validate=True)
        except (binascii.Error, ValueError) as e:
            raise EncryptionError(
                "Invalid encrypted private key format",
                EncryptionError.ERR_INVALID_KEY,
                hint="Encrypted key must be base64-encoded",
            ) from e
        return private_key

    if not _PRIVATE_KEY_RE.match(private_key):
        raise EncryptionError(
            "Invalid private key format",
            EncryptionError.ERR_INVALID_KEY,
            hint="Private key must be 32 bytes of hex, optionally 0x-prefixed",
        )
    return private_key if private_key.startswith("0x") else f"0x{private_key}"


def mask_address(address: str) -> str:
    """Mask address for display in errors.

    Args:
        address: Address to mask.

    Returns:
        Masked address.
    """
    if len(address) < 10:
        return "***"
    return f"{address[:6]}...{address[-4:]}"


def mask_url(url: str) -> str:
    """Mask URL for display in errors.

    Hosted RPC and IPFS gateways often embed credentials in the host or
    path, so only the scheme and a shortened host are kept.

    Args:
        url: URL to mask.

    Returns:
        Masked URL.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return "***"
    netloc = parsed.hostname or ""
    if len(netloc) > 10:
        netloc = f"{netloc[:4]}...{netloc[-4:]}"
    suffix = "/..." if parsed.path not in ("", "/") else ""
    return f"{parsed.scheme}://{netloc}{suffix}"
