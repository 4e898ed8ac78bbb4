"""Read and write calls routed through the Ensis contract."""

import json
import logging
from dataclasses import dataclass
from typing import Any

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3RPCError

from ensis_gateway.coercion import (
    convert_argument,
    format_result,
    validate_and_format_args,
)
from ensis_gateway.config_manager import ConfigManager
from ensis_gateway.crypto import EncryptionManager
from ensis_gateway.ensis_abi import fetch_ensis_abi
from ensis_gateway.exceptions import (
    ArgumentError,
    ConfigError,
    ContractError,
    RequestError,
    TransactionError,
)
from ensis_gateway.logging_config import get_logger, log_with_context
from ensis_gateway.validators import (
    mask_address,
    validate_address,
    validate_private_key,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class FunctionData:
    """Metadata the Ensis contract holds for one target function."""

    selector: bytes
    function_name: str
    arg_types: tuple[str, ...]
    arg_names: tuple[str, ...]


def load_signer(config: ConfigManager) -> LocalAccount:
    """Build the signing account from the ``signer`` config section.

    Raises:
        ConfigError: If no key is configured.
        EncryptionError: If the key is malformed or cannot be decrypted.
    """
    private_key = config.get("signer", "private_key")
    if not private_key:
        raise ConfigError(
            "A signer private key is required for write requests",
            ConfigError.ERR_MISSING_SIGNER,
            hint="Set PRIVATE_KEY",
        )

    encrypted = bool(config.get("signer", "encrypted"))
    private_key = validate_private_key(private_key, encrypted)
    if encrypted:
        manager = EncryptionManager.from_salt_base64(
            config.get("signer", "password") or "", config.get("signer", "salt")
        )
        private_key = validate_private_key(manager.decrypt(private_key), False)

    return Account.from_key(private_key)


def sign_and_send(
    w3: Any, account: LocalAccount, call: Any, receipt_timeout: int
) -> dict[str, Any]:
    """Sign a contract function or constructor call, send it, wait for one receipt.

    Args:
        w3: Web3 instance.
        account: Local signing account.
        call: Anything with ``build_transaction`` (function call or constructor).
        receipt_timeout: Seconds to wait for the receipt.

    Returns:
        The transaction receipt.

    Raises:
        TransactionError: If the node rejects the transaction, the receipt
            does not arrive in time, or the transaction reverted.
    """
    tx = call.build_transaction(
        {
            "from": account.address,
            "nonce": w3.eth.get_transaction_count(account.address, "pending"),
            "chainId": w3.eth.chain_id,
        }
    )
    signed = account.sign_transaction(tx)
    try:
        tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
    except Web3RPCError as e:
        raise TransactionError(
            f"Node rejected the transaction: {e}",
            TransactionError.ERR_SEND_FAILED,
        ) from e

    try:
        receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=receipt_timeout)
    except TimeExhausted as e:
        raise TransactionError(
            f"No receipt for transaction {Web3.to_hex(tx_hash)} after {receipt_timeout}s",
            TransactionError.ERR_RECEIPT_TIMEOUT,
        ) from e

    if receipt.get("status") == 0:
        raise TransactionError(
            f"Transaction reverted: {Web3.to_hex(tx_hash)}",
            TransactionError.ERR_TRANSACTION_REVERTED,
        )
    return receipt


class EnsisGateway:
    """Resolves target functions through Ensis and calls them by name."""

    def __init__(
        self,
        w3: Any,
        contract: Any,
        account: LocalAccount | None = None,
        receipt_timeout: int = 120,
    ):
        """Initialize the gateway.

        Args:
            w3: Web3 instance connected to the chain Ensis lives on.
            contract: Bound Ensis contract.
            account: Signing account; required for writes only.
            receipt_timeout: Seconds to wait for a write's receipt.
        """
        self.w3 = w3
        self.contract = contract
        self.account = account
        self.receipt_timeout = receipt_timeout

    @classmethod
    def from_config(
        cls, config: ConfigManager, with_signer: bool = False
    ) -> "EnsisGateway":
        """Fetch the Ensis ABI and bind the contract described by config.

        Raises:
            ConfigError: If the configuration is incomplete.
        """
        errors = config.validate()
        if errors:
            raise ConfigError(
                "Invalid configuration: " + "; ".join(errors),
                ConfigError.ERR_INVALID_SCHEMA,
            )

        timeout = config.get("rpc", "timeout")
        abi = fetch_ensis_abi(
            config.get("ensis", "abi_url"),
            timeout=timeout,
            cache_ttl=config.get("ensis", "abi_cache_ttl"),
        )
        w3 = Web3(
            Web3.HTTPProvider(config.get("rpc", "url"), request_kwargs={"timeout": timeout})
        )
        contract = w3.eth.contract(
            address=validate_address(
                config.get("ensis", "contract_address"), "Ensis contract address"
            ),
            abi=abi,
        )
        account = load_signer(config) if with_signer else None
        return cls(
            w3,
            contract,
            account=account,
            receipt_timeout=config.get("transaction", "receipt_timeout"),
        )

    def get_function_data(self, target: str, function_name: str) -> FunctionData:
        """Ask Ensis for the selector and parameter list of a target function.

        Both the ``(selector, argTypes, argNames)`` and the
        ``(selector, functionName, argTypes, argNames)`` return shapes are
        accepted.

        Raises:
            ContractError: If Ensis reverts or returns malformed metadata.
        """
        try:
            raw = self.contract.functions.getFunctionData(target, function_name).call()
        except ContractLogicError as e:
            raise ContractError(
                f"Ensis has no data for {function_name} on {mask_address(target)}: {e}",
                ContractError.ERR_INVALID_METADATA,
            ) from e

        if len(raw) == 4:
            selector, resolved_name, arg_types, arg_names = raw
        elif len(raw) == 3:
            selector, arg_types, arg_names = raw
            resolved_name = function_name
        else:
            raise ContractError(
                f"Unexpected getFunctionData result with {len(raw)} fields",
                ContractError.ERR_INVALID_METADATA,
            )

        if len(arg_types) != len(arg_names):
            raise ContractError(
                f"Ensis returned {len(arg_types)} types but {len(arg_names)} names "
                f"for {function_name}",
                ContractError.ERR_INVALID_METADATA,
            )

        return FunctionData(
            selector=bytes(selector),
            function_name=resolved_name or function_name,
            arg_types=tuple(arg_types),
            arg_names=tuple(arg_names),
        )

    def read(self, target: str, function_name: str, args: Any) -> dict[str, str]:
        """Call a target function through ``callContractFunction``.

        Args:
            target: Checksummed target contract address.
            function_name: Function registered with Ensis.
            args: Positional JSON arguments.

        Returns:
            Decoded values keyed by parameter name, each as a string.
        """
        context = {"contract": mask_address(target), "function": function_name}
        if not isinstance(args, list):
            raise RequestError(
                "Request body must be a JSON array of arguments",
                RequestError.ERR_INVALID_BODY,
            )

        data = self.get_function_data(target, function_name)
        if len(args) != len(data.arg_types):
            raise RequestError(
                f"Expected {len(data.arg_types)} arguments, but got {len(args)}",
                RequestError.ERR_ARGUMENT_COUNT,
            )

        converted = [
            convert_argument(value, abi_type)
            for value, abi_type in zip(args, data.arg_types)
        ]
        encoded = self._encode(data, converted)

        success, result = self.contract.functions.callContractFunction(
            target, function_name, encoded
        ).call()
        if not success:
            raise ContractError("Contract call failed", ContractError.ERR_CALL_FAILED)

        try:
            decoded = decode(list(data.arg_types), bytes(result))
        except DecodingError as e:
            raise ContractError(
                f"Failed to decode result of {function_name}: {e}",
                ContractError.ERR_CALL_FAILED,
            ) from e

        log_with_context(logger, logging.INFO, "Read call succeeded", context)
        return format_result(data.arg_types, data.arg_names, decoded)

    def write(
        self, target: str, function_name: str, args: Any
    ) -> dict[str, Any]:
        """Send a transaction through ``executeFunction`` and wait for its receipt.

        Args:
            target: Checksummed target contract address.
            function_name: Function registered with Ensis.
            args: JSON object of arguments keyed by parameter name.

        Returns:
            The transaction receipt as JSON-compatible data.
        """
        context = {"contract": mask_address(target), "function": function_name}
        if self.account is None:
            raise ConfigError(
                "A signer private key is required for write requests",
                ConfigError.ERR_MISSING_SIGNER,
                hint="Set PRIVATE_KEY",
            )
        if not isinstance(args, dict):
            raise RequestError(
                "Request body must be a JSON object of named arguments",
                RequestError.ERR_INVALID_BODY,
            )

        data = self.get_function_data(target, function_name)
        formatted = validate_and_format_args(data.arg_types, data.arg_names, args)
        encoded = self._encode(data, formatted)

        receipt = sign_and_send(
            self.w3,
            self.account,
            self.contract.functions.executeFunction(target, function_name, encoded),
            self.receipt_timeout,
        )

        log_with_context(
            logger,
            logging.INFO,
            "Write transaction mined",
            {**context, "block": receipt.get("blockNumber")},
        )
        return json.loads(Web3.to_json(receipt))

    @staticmethod
    def _encode(data: FunctionData, values: list[Any]) -> bytes:
        try:
            return encode(list(data.arg_types), values)
        except EncodingError as e:
            raise ArgumentError(
                f"Failed to encode arguments for {data.function_name}: {e}",
                ArgumentError.ERR_ENCODING_FAILED,
            ) from e
