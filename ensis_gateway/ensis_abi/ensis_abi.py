"""Ensis contract ABI: built-in fallback and remote loader."""

import time
from typing import Any

import requests

from ensis_gateway.exceptions import ContractError
from ensis_gateway.logging_config import get_logger
from ensis_gateway.validators import mask_url

logger = get_logger(__name__)

ENSIS_ABI: list[dict[str, Any]] = [
    {
        "inputs": [
            {"internalType": "address", "name": "target", "type": "address"},
            {"internalType": "string", "name": "functionName", "type": "string"},
        ],
        "name": "getFunctionData",
        "outputs": [
            {"internalType": "bytes4", "name": "selector", "type": "bytes4"},
            {"internalType": "string[]", "name": "argTypes", "type": "string[]"},
            {"internalType": "string[]", "name": "argNames", "type": "string[]"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "address", "name": "target", "type": "address"},
            {"internalType": "string", "name": "functionName", "type": "string"},
            {"internalType": "bytes", "name": "params", "type": "bytes"},
        ],
        "name": "callContractFunction",
        "outputs": [
            {"internalType": "bool", "name": "success", "type": "bool"},
            {"internalType": "bytes", "name": "result", "type": "bytes"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "address", "name": "target", "type": "address"},
            {"internalType": "string", "name": "functionName", "type": "string"},
            {"internalType": "bytes", "name": "params", "type": "bytes"},
        ],
        "name": "executeFunction",
        "outputs": [
            {"internalType": "bool", "name": "success", "type": "bool"},
            {"internalType": "bytes", "name": "result", "type": "bytes"},
        ],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

# url -> (fetched_at, abi)
_ABI_CACHE: dict[str, tuple[float, list[dict[str, Any]]]] = {}


def clear_abi_cache() -> None:
    _ABI_CACHE.clear()


def _extract_abi(document: Any) -> list[dict[str, Any]]:
    """Accept a bare ABI list or a Hardhat/Foundry artifact with an ``abi`` key."""
    if isinstance(document, dict) and "abi" in document:
        document = document["abi"]
    if not isinstance(document, list) or not all(
        isinstance(entry, dict) for entry in document
    ):
        raise ContractError(
            "Ensis ABI document is not a JSON ABI array",
            ContractError.ERR_INVALID_ABI,
            hint="ENSIS_ABI_URL must serve an ABI list or an artifact with an 'abi' key",
        )
    return document


def fetch_ensis_abi(
    abi_url: str | None, timeout: int = 15, cache_ttl: int = 0
) -> list[dict[str, Any]]:
    """Load the Ensis ABI from abi_url, or the built-in ABI if none is set.

    Args:
        abi_url: Location of the ABI JSON (IPFS gateway, HTTP host).
        timeout: Request timeout in seconds.
        cache_ttl: Seconds a fetched ABI stays valid; 0 disables caching.

    Returns:
        The ABI as a list of entries.

    Raises:
        ContractError: If the document cannot be fetched or is not an ABI.
    """
    if not abi_url:
        return ENSIS_ABI

    now = time.time()
    if cache_ttl > 0:
        cached = _ABI_CACHE.get(abi_url)
        if cached and now - cached[0] < cache_ttl:
            return cached[1]

    try:
        response = requests.get(abi_url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        # str(e) repeats the full URL, which may carry a gateway token
        status = getattr(e.response, "status_code", None)
        reason = f"HTTP {status}" if status else type(e).__name__
        raise ContractError(
            f"Failed to fetch Ensis ABI from {mask_url(abi_url)}: {reason}",
            ContractError.ERR_ABI_FETCH_FAILED,
        ) from e

    try:
        document = response.json()
    except ValueError as e:
        raise ContractError(
            f"Ensis ABI at {mask_url(abi_url)} is not valid JSON",
            ContractError.ERR_INVALID_ABI,
        ) from e

    abi = _extract_abi(document)
    logger.debug(f"Fetched Ensis ABI with {len(abi)} entries from {mask_url(abi_url)}")

    if cache_ttl > 0:
        _ABI_CACHE[abi_url] = (now, abi)
    return abi
