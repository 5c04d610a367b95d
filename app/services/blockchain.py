"""
Ethereum reads over JSON-RPC (Alchemy or any compatible node).
"""

import itertools
import re
from typing import Any, List, Optional

import httpx

from app.core.logging_config import get_logger
from app.core.service_errors import BlockchainError, classify

logger = get_logger(__name__)

INVALID_ARGUMENT = "INVALID_ARGUMENT"
WEI_PER_ETHER = 10**18

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
TX_HASH_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")


class RpcError(Exception):
    """JSON-RPC error object returned by the node."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


def validate_address(address: str) -> str:
    if not ADDRESS_PATTERN.match(address or ""):
        raise BlockchainError(f"Invalid Ethereum address: {address}", code=INVALID_ARGUMENT)
    return address


def validate_tx_hash(tx_hash: str) -> str:
    if not TX_HASH_PATTERN.match(tx_hash or ""):
        raise BlockchainError(f"Invalid transaction hash: {tx_hash}", code=INVALID_ARGUMENT)
    return tx_hash


def format_ether(wei: int) -> str:
    """Format a wei amount as ether, e.g. 1500000000000000000 -> "1.5"."""
    whole, fraction = divmod(wei, WEI_PER_ETHER)
    fraction_digits = f"{fraction:018d}".rstrip("0") or "0"
    return f"{whole}.{fraction_digits}"


def _hex_to_int(value: Any) -> int:
    if not isinstance(value, str):
        raise ValueError(f"Expected hex quantity, got {value!r}")
    return int(value, 16)


class EthereumRpcClient:
    def __init__(self, client: httpx.AsyncClient, rpc_url: str, required_confirmations: int = 3):
        self._client = client
        self._rpc_url = rpc_url
        self.required_confirmations = required_confirmations
        self._ids = itertools.count(1)

    async def _rpc(self, method: str, params: List[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        response = await self._client.post(self._rpc_url, json=payload)
        response.raise_for_status()
        body = response.json()
        error = body.get("error")
        if error:
            raise RpcError(error.get("message") or "JSON-RPC error", code=error.get("code"))
        return body.get("result")

    async def get_balance(self, address: str) -> str:
        """ETH balance of `address` at the latest block, in ether."""
        validate_address(address)
        try:
            wei = _hex_to_int(await self._rpc("eth_getBalance", [address, "latest"]))
        except Exception as e:
            raise classify(e, "blockchain") from e
        return format_ether(wei)

    async def get_block_number(self) -> int:
        try:
            return _hex_to_int(await self._rpc("eth_blockNumber", []))
        except Exception as e:
            raise classify(e, "blockchain") from e

    async def verify_transaction(self, tx_hash: str) -> bool:
        """
        True once the transaction is mined with at least
        `required_confirmations` blocks on top of it.

        Unknown or pending transactions return False.
        """
        validate_tx_hash(tx_hash)
        try:
            tx = await self._rpc("eth_getTransactionByHash", [tx_hash])
            if not tx:
                return False

            receipt = await self._rpc("eth_getTransactionReceipt", [tx_hash])
            if not receipt or receipt.get("blockNumber") is None:
                return False

            current_block = _hex_to_int(await self._rpc("eth_blockNumber", []))
            confirmations = current_block - _hex_to_int(receipt["blockNumber"])
        except Exception as e:
            raise classify(e, "blockchain") from e

        logger.debug("Transaction confirmations", tx_hash=tx_hash, confirmations=confirmations)
        return confirmations >= self.required_confirmations
