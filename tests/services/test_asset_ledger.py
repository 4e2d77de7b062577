# tests/services/test_asset_ledger.py
"""Tests for the web3-backed asset ledger."""

from unittest.mock import MagicMock, patch

import pytest
from web3.exceptions import ContractLogicError

from publish_stage.core.settings import Settings
from publish_stage.services.asset_ledger import Web3AssetLedger
from publish_stage.services.errors import UpstreamFailure

ASSET = "0x" + "12" * 20
HOLDER = "0x" + "ab" * 20


@pytest.fixture()
def ledger() -> Web3AssetLedger:
    settings = Settings(
        _env_file=None,  # type: ignore[call-arg]
        secret_key="k",
        chain_rpc_url="http://127.0.0.1:8545",
    )
    return Web3AssetLedger(settings)


def test_balance_of_calls_contract(ledger):
    contract = MagicMock()
    contract.functions.balanceOf.return_value.call.return_value = 3
    with patch.object(ledger, "_contract", return_value=contract) as build:
        assert ledger.balance_of(ASSET, HOLDER) == 3

    build.assert_called_once_with(ASSET)
    (holder,) = contract.functions.balanceOf.call_args.args
    assert holder.lower() == HOLDER


def test_asset_cid_calls_contract(ledger):
    contract = MagicMock()
    contract.functions.assetCid.return_value.call.return_value = "bafkreiasset"
    with patch.object(ledger, "_contract", return_value=contract):
        assert ledger.asset_cid(ASSET) == "bafkreiasset"


def test_reverted_call_is_upstream_failure(ledger):
    contract = MagicMock()
    contract.functions.assetCid.return_value.call.side_effect = ContractLogicError("execution reverted")
    with patch.object(ledger, "_contract", return_value=contract):
        with pytest.raises(UpstreamFailure):
            ledger.asset_cid(ASSET)


def test_connection_error_is_upstream_failure(ledger):
    contract = MagicMock()
    contract.functions.balanceOf.return_value.call.side_effect = ConnectionError("refused")
    with patch.object(ledger, "_contract", return_value=contract):
        with pytest.raises(UpstreamFailure):
            ledger.balance_of(ASSET, HOLDER)


def test_unconfigured_rpc_is_upstream_failure():
    ledger = Web3AssetLedger(Settings(_env_file=None, secret_key="k"))  # type: ignore[call-arg]
    with pytest.raises(UpstreamFailure):
        ledger.balance_of(ASSET, HOLDER)
