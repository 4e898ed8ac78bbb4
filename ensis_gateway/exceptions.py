"""Custom exception hierarchy for the Ensis gateway."""

# ruff: noqa: N818 - Base exception class ending with "Exception" is acceptable for base class


class EnsisException(Exception):
    """Base exception for all gateway errors."""

    def __init__(self, message: str, code: int, hint: str | None = None):
        self.message = message
        self.code = code
        self.hint = hint
        super().__init__(self.message)


class RequestError(EnsisException):
    """Malformed request path or body."""

    ERR_INVALID_PATH = 1001
    ERR_INVALID_BODY = 1002
    ERR_ARGUMENT_COUNT = 1003


class ConfigError(EnsisException):
    """Configuration errors."""

    ERR_MISSING_FILE = 2001
    ERR_INVALID_SCHEMA = 2002
    ERR_INVALID_URL = 2006
    ERR_MISSING_SIGNER = 2007
    ERR_INVALID_ARTIFACT = 2008


class ArgumentError(EnsisException):
    """Argument coercion/validation errors."""

    ERR_MISSING_ARGUMENT = 3001
    ERR_INVALID_ADDRESS = 3002
    ERR_INVALID_INTEGER = 3003
    ERR_INVALID_BOOL = 3004
    ERR_INVALID_STRING = 3005
    ERR_INVALID_ARRAY = 3006
    ERR_INVALID_BYTES = 3007
    ERR_ENCODING_FAILED = 3008


class ContractError(EnsisException):
    """Ensis contract interaction errors."""

    ERR_ABI_FETCH_FAILED = 4001
    ERR_INVALID_ABI = 4002
    ERR_INVALID_METADATA = 4003
    ERR_CALL_FAILED = 4004


class TransactionError(EnsisException):
    """Transaction-related errors."""

    ERR_SEND_FAILED = 5001
    ERR_RECEIPT_TIMEOUT = 5002
    ERR_TRANSACTION_REVERTED = 5003


class EncryptionError(EnsisException):
    """Encryption/decryption errors."""

    ERR_INVALID_KEY = 6001
    ERR_DECRYPTION_FAILED = 6002
    ERR_ENCRYPTION_FAILED = 6003
