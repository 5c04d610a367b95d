from typing import Any

from fastapi import APIRouter, Depends

from app.api import deps
from app.core.config import settings
from app.schemas import ApiResponse, BalanceOut, TransactionVerificationOut, success
from app.services.blockchain import validate_address, validate_tx_hash

router = APIRouter()


@router.get("/wallets/{address}/balance", response_model=ApiResponse)
async def get_wallet_balance(address: str, blockchain: Any = Depends(deps.get_blockchain)) -> Any:
    # Validate before the guarded call so bad input never counts as a failure
    validate_address(address)
    balance = await blockchain.get_balance(address)
    out = BalanceOut(address=address, balance=balance, network=settings.BLOCKCHAIN_NETWORK)
    return success("Balance fetched", out.model_dump())


@router.get("/transactions/{tx_hash}/verify", response_model=ApiResponse)
async def verify_transaction(tx_hash: str, blockchain: Any = Depends(deps.get_blockchain)) -> Any:
    validate_tx_hash(tx_hash)
    confirmed = await blockchain.verify_transaction(tx_hash)
    out = TransactionVerificationOut(
        tx_hash=tx_hash,
        confirmed=confirmed,
        required_confirmations=blockchain.required_confirmations,
    )
    message = "Transaction confirmed" if confirmed else "Transaction not yet confirmed"
    return success(message, out.model_dump())
