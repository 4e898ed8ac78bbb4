import pytest

from ensis_gateway.config_manager import ConfigManager, reset_config_manager
from ensis_gateway.ensis_abi import clear_abi_cache

ENSIS_ADDRESS = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
TARGET_ADDRESS = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"

# Well-known local development key (Hardhat/Anvil account #0)
SIGNER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
SIGNER_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"


@pytest.fixture(autouse=True)
def reset_state(monkeypatch, tmp_path):
    """Reset global state and environment before each test."""
    for env_var in ConfigManager.ENV_MAPPINGS:
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.setenv("ENSIS_CONFIG_PATH", str(tmp_path / "absent.yaml"))
    reset_config_manager()
    clear_abi_cache()
    yield
    reset_config_manager()
    clear_abi_cache()


@pytest.fixture
def config(tmp_path):
    """A valid configuration pointing at a local node."""
    cfg = ConfigManager(str(tmp_path / "ensis_config.yaml"))
    cfg.set("ensis", "contract_address", value=ENSIS_ADDRESS)
    cfg.set("rpc", "url", value="http://127.0.0.1:8545")
    return cfg
