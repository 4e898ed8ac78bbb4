import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from eth_account import Account

from ensis_gateway.deploy import (
    INITIAL_PRICE,
    deploy_contract,
    deploy_from_config,
    load_artifact,
    resolve_artifact_path,
)
from ensis_gateway.exceptions import ConfigError, TransactionError

from conftest import ENSIS_ADDRESS, SIGNER_ADDRESS, SIGNER_KEY

LOCK_ABI = [
    {
        "inputs": [{"internalType": "uint256", "name": "initialPrice", "type": "uint256"}],
        "stateMutability": "nonpayable",
        "type": "constructor",
    }
]
BYTECODE = "0x6080604052"
TX_HASH = b"\x22" * 32


def make_w3(status=1):
    w3 = MagicMock()
    w3.eth.chain_id = 31337
    w3.eth.get_transaction_count.return_value = 3
    w3.eth.send_raw_transaction.return_value = TX_HASH
    w3.eth.wait_for_transaction_receipt.return_value = {
        "transactionHash": TX_HASH,
        "contractAddress": ENSIS_ADDRESS,
        "status": status,
        "blockNumber": 9,
    }
    w3.eth.contract.return_value.constructor.return_value.build_transaction.return_value = {
        "value": 0,
        "gas": 500000,
        "gasPrice": 1,
        "nonce": 3,
        "chainId": 31337,
        "data": BYTECODE,
    }
    return w3


def write_artifact(path, bytecode):
    path.write_text(json.dumps({"contractName": "Lock", "abi": LOCK_ABI, "bytecode": bytecode}))
    return path


class TestLoadArtifact:
    def test_hardhat_artifact(self, tmp_path):
        """Test a Hardhat artifact with a bytecode string."""
        path = write_artifact(tmp_path / "Lock.json", BYTECODE)

        abi, bytecode = load_artifact(path)

        assert abi == LOCK_ABI
        assert bytecode == BYTECODE

    def test_foundry_artifact(self, tmp_path):
        """Test a Foundry artifact with a bytecode object, no 0x prefix."""
        path = write_artifact(tmp_path / "Lock.json", {"object": BYTECODE[2:]})

        _, bytecode = load_artifact(path)

        assert bytecode == BYTECODE

    def test_missing_file(self, tmp_path):
        """Test a missing artifact is a ConfigError."""
        with pytest.raises(ConfigError) as exc_info:
            load_artifact(tmp_path / "missing.json")
        assert exc_info.value.code == ConfigError.ERR_MISSING_FILE

    def test_empty_bytecode(self, tmp_path):
        """Test an interface-only artifact cannot be deployed."""
        path = write_artifact(tmp_path / "Lock.json", "0x")

        with pytest.raises(ConfigError, match="no ABI or bytecode"):
            load_artifact(path)

    def test_invalid_json(self, tmp_path):
        """Test a corrupt artifact is a ConfigError."""
        path = tmp_path / "Lock.json"
        path.write_text("{")

        with pytest.raises(ConfigError, match="not valid JSON"):
            load_artifact(path)


class TestDeployContract:
    def test_deploy_with_default_price(self):
        """Test the constructor receives the initial price and the receipt is summarised."""
        w3 = make_w3()
        account = Account.from_key(SIGNER_KEY)

        result = deploy_contract(w3, account, LOCK_ABI, BYTECODE)

        w3.eth.contract.assert_called_once_with(abi=LOCK_ABI, bytecode=BYTECODE)
        w3.eth.contract.return_value.constructor.assert_called_once_with(INITIAL_PRICE)
        w3.eth.contract.return_value.constructor.return_value.build_transaction.assert_called_once_with(
            {"from": SIGNER_ADDRESS, "nonce": 3, "chainId": 31337}
        )
        assert result == {
            "tx_hash": "0x" + "22" * 32,
            "contract_address": ENSIS_ADDRESS,
            "status": 1,
            "block_number": 9,
        }

    def test_deploy_custom_price(self):
        """Test a custom initial price is forwarded."""
        w3 = make_w3()

        deploy_contract(w3, Account.from_key(SIGNER_KEY), LOCK_ABI, BYTECODE, initial_price=5)

        w3.eth.contract.return_value.constructor.assert_called_once_with(5)

    def test_deploy_reverted(self):
        """Test a failed deployment raises."""
        with pytest.raises(TransactionError):
            deploy_contract(make_w3(status=0), Account.from_key(SIGNER_KEY), LOCK_ABI, BYTECODE)

    def test_constructor_must_take_one_argument(self):
        """Test an artifact without the price parameter is rejected."""
        with pytest.raises(ConfigError, match="one parameter, found 0"):
            deploy_contract(make_w3(), Account.from_key(SIGNER_KEY), [], BYTECODE)

    def test_negative_price(self):
        """Test a negative price is rejected before sending."""
        w3 = make_w3()
        with pytest.raises(ConfigError, match="Invalid initial price"):
            deploy_contract(w3, Account.from_key(SIGNER_KEY), LOCK_ABI, BYTECODE, initial_price=-1)
        w3.eth.send_raw_transaction.assert_not_called()


class TestDeployFromConfig:
    def test_uses_config_values(self, config, tmp_path):
        """Test artifact, signer and price come from config."""
        artifact = write_artifact(tmp_path / "Lock.json", BYTECODE)
        config.set("deploy", "artifact", value=str(artifact))
        config.set("deploy", "initial_price", value=42)
        config.set("signer", "private_key", value=SIGNER_KEY)

        with (
            patch("ensis_gateway.deploy.Web3") as mock_web3,
            patch("ensis_gateway.deploy.deploy_contract") as mock_deploy,
        ):
            deploy_from_config(config)

            mock_web3.HTTPProvider.assert_called_once_with(
                "http://127.0.0.1:8545", request_kwargs={"timeout": 15}
            )
            _, kwargs = mock_deploy.call_args
            assert kwargs == {"initial_price": 42, "receipt_timeout": 120}
            assert mock_deploy.call_args.args[1].address == SIGNER_ADDRESS

    def test_explicit_values_win(self, config, tmp_path):
        """Test explicit arguments override config, including a zero price."""
        artifact = write_artifact(tmp_path / "Lock.json", BYTECODE)
        config.set("signer", "private_key", value=SIGNER_KEY)

        with (
            patch("ensis_gateway.deploy.Web3"),
            patch("ensis_gateway.deploy.deploy_contract") as mock_deploy,
        ):
            deploy_from_config(config, artifact=str(artifact), initial_price=0, receipt_timeout=9)

            _, kwargs = mock_deploy.call_args
            assert kwargs == {"initial_price": 0, "receipt_timeout": 9}

    def test_artifact_from_contract_name(self, config, tmp_path, monkeypatch):
        """Test the Hardhat artifact of deploy.contract_name is used by default."""
        monkeypatch.chdir(tmp_path)
        artifact_dir = tmp_path / "artifacts" / "contracts" / "Ensis.sol"
        artifact_dir.mkdir(parents=True)
        write_artifact(artifact_dir / "Ensis.json", BYTECODE)
        config.set("deploy", "contract_name", value="Ensis")
        config.set("signer", "private_key", value=SIGNER_KEY)

        assert resolve_artifact_path(config) == Path(
            "artifacts/contracts/Ensis.sol/Ensis.json"
        )
        with (
            patch("ensis_gateway.deploy.Web3"),
            patch("ensis_gateway.deploy.deploy_contract") as mock_deploy,
        ):
            deploy_from_config(config)

            assert mock_deploy.call_args.args[3] == BYTECODE

    def test_artifact_precedence(self, config):
        """Test an explicit path beats deploy.artifact, which beats the name."""
        config.set("deploy", "artifact", value="build/Custom.json")

        assert resolve_artifact_path(config) == Path("build/Custom.json")
        assert resolve_artifact_path(config, "other.json") == Path("other.json")

    def test_requires_rpc(self, tmp_path):
        """Test deployment needs an RPC URL."""
        from ensis_gateway.config_manager import ConfigManager

        with pytest.raises(ConfigError, match="rpc.url is required"):
            deploy_from_config(ConfigManager(str(tmp_path / "none.yaml")))
