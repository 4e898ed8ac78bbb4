from unittest.mock import MagicMock, patch

import pytest
import requests

from ensis_gateway.ensis_abi import ENSIS_ABI, fetch_ensis_abi
from ensis_gateway.exceptions import ContractError

ABI_URL = "https://ipfs.example.org/ipfs/QmEnsisAbi"
REMOTE_ABI = [{"type": "function", "name": "getFunctionData", "inputs": []}]


def mock_response(payload):
    response = MagicMock()
    response.json.return_value = payload
    return response


class TestFetchEnsisAbi:
    def test_builtin_abi_without_url(self):
        """Test the built-in ABI is used when no URL is configured."""
        with patch("ensis_gateway.ensis_abi.ensis_abi.requests.get") as mock_get:
            abi = fetch_ensis_abi(None)

        assert abi is ENSIS_ABI
        mock_get.assert_not_called()
        names = {entry["name"] for entry in ENSIS_ABI}
        assert names == {"getFunctionData", "callContractFunction", "executeFunction"}

    def test_bare_abi_list(self):
        """Test an ABI served as a plain list."""
        with patch("ensis_gateway.ensis_abi.ensis_abi.requests.get") as mock_get:
            mock_get.return_value = mock_response(REMOTE_ABI)

            abi = fetch_ensis_abi(ABI_URL, timeout=7)

        assert abi == REMOTE_ABI
        mock_get.assert_called_once_with(ABI_URL, timeout=7)

    def test_artifact_document(self):
        """Test an artifact with an abi key."""
        with patch("ensis_gateway.ensis_abi.ensis_abi.requests.get") as mock_get:
            mock_get.return_value = mock_response(
                {"contractName": "Ensis", "abi": REMOTE_ABI, "bytecode": "0x00"}
            )

            assert fetch_ensis_abi(ABI_URL) == REMOTE_ABI

    def test_not_an_abi(self):
        """Test a JSON document that is not an ABI is rejected."""
        with patch("ensis_gateway.ensis_abi.ensis_abi.requests.get") as mock_get:
            mock_get.return_value = mock_response({"hello": "world"})

            with pytest.raises(ContractError) as exc_info:
                fetch_ensis_abi(ABI_URL)

        assert exc_info.value.code == ContractError.ERR_INVALID_ABI

    def test_invalid_json(self):
        """Test a non-JSON response is rejected."""
        with patch("ensis_gateway.ensis_abi.ensis_abi.requests.get") as mock_get:
            response = MagicMock()
            response.json.side_effect = ValueError("Expecting value")
            mock_get.return_value = response

            with pytest.raises(ContractError, match="not valid JSON"):
                fetch_ensis_abi(ABI_URL)

    def test_http_error_masks_url(self):
        """Test HTTP failures report the status without the full URL."""
        with patch("ensis_gateway.ensis_abi.ensis_abi.requests.get") as mock_get:
            response = MagicMock()
            response.raise_for_status.side_effect = requests.HTTPError(
                "404 Client Error", response=MagicMock(status_code=404)
            )
            mock_get.return_value = response

            with pytest.raises(ContractError) as exc_info:
                fetch_ensis_abi(ABI_URL)

        assert exc_info.value.code == ContractError.ERR_ABI_FETCH_FAILED
        assert "HTTP 404" in exc_info.value.message
        assert "QmEnsisAbi" not in exc_info.value.message

    def test_connection_error(self):
        """Test network failures are reported as fetch failures."""
        with patch("ensis_gateway.ensis_abi.ensis_abi.requests.get") as mock_get:
            mock_get.side_effect = requests.ConnectionError("refused")

            with pytest.raises(ContractError, match="ConnectionError"):
                fetch_ensis_abi(ABI_URL)

    def test_no_cache_by_default(self):
        """Test the ABI is fetched on every call when caching is off."""
        with patch("ensis_gateway.ensis_abi.ensis_abi.requests.get") as mock_get:
            mock_get.return_value = mock_response(REMOTE_ABI)

            fetch_ensis_abi(ABI_URL)
            fetch_ensis_abi(ABI_URL)

        assert mock_get.call_count == 2

    def test_cache_within_ttl(self):
        """Test a cached ABI is reused until the TTL expires."""
        with (
            patch("ensis_gateway.ensis_abi.ensis_abi.requests.get") as mock_get,
            patch("ensis_gateway.ensis_abi.ensis_abi.time.time") as mock_time,
        ):
            mock_get.return_value = mock_response(REMOTE_ABI)

            mock_time.return_value = 1000
            fetch_ensis_abi(ABI_URL, cache_ttl=60)
            mock_time.return_value = 1059
            fetch_ensis_abi(ABI_URL, cache_ttl=60)
            assert mock_get.call_count == 1

            mock_time.return_value = 1061
            fetch_ensis_abi(ABI_URL, cache_ttl=60)
            assert mock_get.call_count == 2
