"""Deployment of the Ensis contract.

The contract takes a single constructor parameter, ``initialPrice`` (wei).
Artifacts from Hardhat (``bytecode`` is a string) and Foundry (``bytecode``
is an object with an ``object`` key) are both accepted.
"""

import json
import logging
from pathlib import Path
from typing import Any

from web3 import Web3

from ensis_gateway.config_manager import ConfigManager
from ensis_gateway.exceptions import ConfigError
from ensis_gateway.gateway import load_signer, sign_and_send
from ensis_gateway.logging_config import get_logger, log_with_context
from ensis_gateway.validators import is_valid_rpc_url

logger = get_logger(__name__)

MODULE_NAME = "EnsisModule"
INITIAL_PRICE = 1_000_000_000


def hardhat_artifact_path(contract_name: str) -> Path:
    """Where ``npx hardhat compile`` writes the artifact for contract_name."""
    return Path("artifacts", "contracts", f"{contract_name}.sol", f"{contract_name}.json")


def resolve_artifact_path(config: ConfigManager, artifact: str | None = None) -> Path:
    """Pick the artifact: explicit path, then deploy.artifact, then deploy.contract_name."""
    if artifact:
        return Path(artifact)
    configured = config.get("deploy", "artifact")
    if configured:
        return Path(configured)
    return hardhat_artifact_path(config.get("deploy", "contract_name") or "Lock")


def load_artifact(path: str | Path) -> tuple[list[dict[str, Any]], str]:
    """Read ``(abi, bytecode)`` from a compiled contract artifact.

    Raises:
        ConfigError: If the file is missing or lacks an ABI or bytecode.
    """
    artifact_path = Path(path)
    if not artifact_path.is_file():
        raise ConfigError(
            f"Contract artifact not found: {artifact_path}",
            ConfigError.ERR_MISSING_FILE,
            hint="Compile the contract first (npx hardhat compile / forge build)",
        )

    with artifact_path.open("r", encoding="utf-8") as f:
        try:
            artifact = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(
                f"Contract artifact is not valid JSON: {artifact_path}",
                ConfigError.ERR_INVALID_ARTIFACT,
            ) from e

    abi = artifact.get("abi") if isinstance(artifact, dict) else None
    bytecode = artifact.get("bytecode") if isinstance(artifact, dict) else None
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object")

    if not isinstance(abi, list) or not isinstance(bytecode, str) or bytecode in ("", "0x"):
        raise ConfigError(
            f"Contract artifact has no ABI or bytecode: {artifact_path}",
            ConfigError.ERR_INVALID_ARTIFACT,
        )

    if not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode
    return abi, bytecode


def constructor_inputs(abi: list[dict[str, Any]]) -> list[dict[str, Any]]:
    for entry in abi:
        if entry.get("type") == "constructor":
            return entry.get("inputs", [])
    return []


def deploy_contract(
    w3: Any,
    account: Any,
    abi: list[dict[str, Any]],
    bytecode: str,
    initial_price: int = INITIAL_PRICE,
    receipt_timeout: int = 180,
) -> dict[str, Any]:
    """Deploy the contract with ``initial_price`` as its only constructor argument.

    Args:
        w3: Web3 instance.
        account: Local signing account paying for the deployment.
        abi: Contract ABI.
        bytecode: 0x-prefixed creation bytecode.
        initial_price: Value for the ``initialPrice`` constructor parameter.
        receipt_timeout: Seconds to wait for the deployment receipt.

    Returns:
        Dict with tx_hash, contract_address, status and block_number.

    Raises:
        ConfigError: If the constructor does not take exactly one argument or
            initial_price is negative.
        TransactionError: If the deployment reverts or times out.
    """
    inputs = constructor_inputs(abi)
    if len(inputs) != 1:
        raise ConfigError(
            f"Expected a constructor with one parameter, found {len(inputs)}",
            ConfigError.ERR_INVALID_ARTIFACT,
        )
    if isinstance(initial_price, bool) or not isinstance(initial_price, int) or initial_price < 0:
        raise ConfigError(
            f"Invalid initial price: {initial_price}",
            ConfigError.ERR_INVALID_SCHEMA,
            hint="Initial price must be a non-negative integer (wei)",
        )

    factory = w3.eth.contract(abi=abi, bytecode=bytecode)
    receipt = sign_and_send(w3, account, factory.constructor(initial_price), receipt_timeout)

    result = {
        "tx_hash": Web3.to_hex(receipt["transactionHash"]),
        "contract_address": receipt["contractAddress"],
        "status": receipt["status"],
        "block_number": receipt["blockNumber"],
    }
    log_with_context(
        logger,
        logging.INFO,
        f"{MODULE_NAME} deployed",
        {"address": result["contract_address"], "initial_price": initial_price},
    )
    return result


def deploy_from_config(
    config: ConfigManager,
    artifact: str | None = None,
    initial_price: int | None = None,
    receipt_timeout: int | None = None,
) -> dict[str, Any]:
    """Deploy using the rpc, signer and deploy sections of config.

    Explicit arguments take precedence over config values.
    """
    rpc_url = config.get("rpc", "url")
    if not is_valid_rpc_url(rpc_url):
        raise ConfigError(
            "rpc.url is required for deployment (RPC_URL)",
            ConfigError.ERR_INVALID_URL,
        )

    abi, bytecode = load_artifact(resolve_artifact_path(config, artifact))
    account = load_signer(config)
    w3 = Web3(
        Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": config.get("rpc", "timeout")})
    )

    return deploy_contract(
        w3,
        account,
        abi,
        bytecode,
        initial_price=(
            initial_price
            if initial_price is not None
            else config.get("deploy", "initial_price")
        ),
        receipt_timeout=receipt_timeout or config.get("transaction", "receipt_timeout"),
    )
