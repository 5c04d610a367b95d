from typing import Any

from fastapi import APIRouter, Depends

from app.api import deps
from app.schemas import ApiResponse, PaymentVerificationOut, success

router = APIRouter()


@router.get("/banks", response_model=ApiResponse)
async def list_banks(payments: Any = Depends(deps.get_payments)) -> Any:
    banks = await payments.get_banks()
    return success("Banks fetched", banks)


@router.get("/{reference}/verify", response_model=ApiResponse)
async def verify_payment(reference: str, payments: Any = Depends(deps.get_payments)) -> Any:
    result = await payments.verify_payment(reference)
    return success("Payment verified", PaymentVerificationOut(**result).model_dump())
