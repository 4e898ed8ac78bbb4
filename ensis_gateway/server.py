import json
from typing import Any, Dict, List

from mcp.server.fastmcp import FastMCP

from ensis_gateway.config_manager import get_config_manager
from ensis_gateway.exceptions import EnsisException
from ensis_gateway.gateway import EnsisGateway
from ensis_gateway.logging_config import get_logger
from ensis_gateway.validators import validate_address

mcp = FastMCP("ensis-gateway")

logger = get_logger(__name__)


def _error(e: Exception) -> str:
    message = e.message if isinstance(e, EnsisException) else str(e)
    return f"Error: {message}"


@mcp.tool()
def get_function_data(contract_address: str, function_name: str) -> str:
    """
    Look up the selector and parameter list Ensis holds for a contract function.

    Args:
        contract_address: The target contract address.
        function_name: The function name registered with Ensis.
    """
    try:
        target = validate_address(contract_address, "contract address")
        gateway = EnsisGateway.from_config(get_config_manager())
        data = gateway.get_function_data(target, function_name)
        return json.dumps(
            {
                "selector": "0x" + data.selector.hex(),
                "function_name": data.function_name,
                "arg_types": list(data.arg_types),
                "arg_names": list(data.arg_names),
            }
        )
    except Exception as e:
        logger.warning(f"get_function_data failed: {e}")
        return _error(e)


@mcp.tool()
def read_contract(
    contract_address: str, function_name: str, args: List[Any] | None = None
) -> str:
    """
    Call a read-only contract function by name through Ensis.
    Returns the decoded values keyed by parameter name, as JSON.

    Args:
        contract_address: The target contract address.
        function_name: The function name registered with Ensis.
        args: Positional arguments, in parameter order.
    """
    try:
        target = validate_address(contract_address, "contract address")
        gateway = EnsisGateway.from_config(get_config_manager())
        return json.dumps(gateway.read(target, function_name, args or []))
    except Exception as e:
        logger.warning(f"read_contract failed: {e}")
        return _error(e)


@mcp.tool()
def write_contract(
    contract_address: str, function_name: str, args: Dict[str, Any] | None = None
) -> str:
    """
    Execute a state-changing contract function by name through Ensis.
    Signs with the configured key, waits for one receipt and returns it as JSON.

    Args:
        contract_address: The target contract address.
        function_name: The function name registered with Ensis.
        args: Arguments keyed by parameter name.
    """
    try:
        target = validate_address(contract_address, "contract address")
        gateway = EnsisGateway.from_config(get_config_manager(), with_signer=True)
        return json.dumps(gateway.write(target, function_name, args or {}))
    except Exception as e:
        logger.warning(f"write_contract failed: {e}")
        return _error(e)


def main():
    mcp.run()


if __name__ == "__main__":
    main()
