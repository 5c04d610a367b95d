from typing import Any, Dict, Optional
from pydantic import BaseModel


class ApiResponse(BaseModel):
    success: bool = True
    status: str = "success"
    message: str
    data: Optional[Any] = None


class ErrorResponse(BaseModel):
    success: bool = False
    status: str = "error"
    message: str
    kind: str


class PriceOut(BaseModel):
    symbol: str
    price_ngn: float


class ConversionOut(BaseModel):
    symbol: str
    amount: str
    result: str  # Naira formatted with thousands separators, or crypto at symbol precision


class BalanceOut(BaseModel):
    address: str
    balance: str  # Ether, decimal string
    network: str


class TransactionVerificationOut(BaseModel):
    tx_hash: str
    confirmed: bool
    required_confirmations: int


class PaymentVerificationOut(BaseModel):
    reference: str
    status: Optional[str] = None
    amount: Optional[Any] = None
    currency: Optional[str] = None


def success(message: str, data: Any = None) -> Dict[str, Any]:
    return ApiResponse(message=message, data=data).model_dump()
