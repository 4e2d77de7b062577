"""Read-only view of published asset contracts.

Each published draft is represented on chain by an asset contract that
records the content address it was minted from (``assetCid``) and an
ERC-20 style ``balanceOf`` for holders. Holding a non-zero balance is what
grants access to the published file.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol

from web3 import Web3
from web3.exceptions import Web3Exception

from publish_stage.core.settings import Settings
from publish_stage.services.errors import UpstreamFailure

logger = logging.getLogger(__name__)

ASSET_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "assetCid",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
]


class AssetLedger(Protocol):
    """Chain reads needed to gate access to a published asset."""

    def balance_of(self, asset_address: str, holder: str) -> int:
        """Return how many units of the asset ``holder`` owns."""

    def asset_cid(self, asset_address: str) -> str:
        """Return the content address the asset was published from."""


class Web3AssetLedger:
    """:class:`AssetLedger` backed by a JSON-RPC node.

    The provider is created lazily so that a deployment without
    ``CHAIN_RPC_URL`` can still serve every other endpoint.
    """

    def __init__(self, settings: Settings) -> None:
        self._rpc_url = settings.chain_rpc_url
        self._timeout = settings.chain_rpc_timeout_seconds
        self._web3: Web3 | None = None

    def balance_of(self, asset_address: str, holder: str) -> int:
        contract = self._contract(asset_address)
        return int(
            self._call(
                asset_address,
                "balanceOf",
                lambda: contract.functions.balanceOf(Web3.to_checksum_address(holder)).call(),
            )
        )

    def asset_cid(self, asset_address: str) -> str:
        contract = self._contract(asset_address)
        return str(self._call(asset_address, "assetCid", lambda: contract.functions.assetCid().call()))

    def _contract(self, asset_address: str) -> Any:
        if self._web3 is None:
            if not self._rpc_url:
                raise UpstreamFailure("CHAIN_RPC_URL is not configured")
            self._web3 = Web3(
                Web3.HTTPProvider(self._rpc_url, request_kwargs={"timeout": self._timeout})
            )
        return self._web3.eth.contract(
            address=Web3.to_checksum_address(asset_address),
            abi=ASSET_ABI,
        )

    @staticmethod
    def _call(asset_address: str, function: str, call: Callable[[], Any]) -> Any:
        try:
            return call()
        except (Web3Exception, OSError, ValueError) as exc:
            logger.error("Chain read %s on %s failed: %s", function, asset_address, exc, exc_info=True)
            raise UpstreamFailure("Chain read failed") from exc
