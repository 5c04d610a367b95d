from typing import Any

from fastapi import APIRouter, Depends, Query

from app.api import deps
from app.schemas import ApiResponse, ConversionOut, PriceOut, success
from app.services.price import convert_crypto_to_naira, convert_naira_to_crypto, normalize_symbol

router = APIRouter()


@router.get("/{symbol}", response_model=ApiResponse)
async def get_price(symbol: str, prices: Any = Depends(deps.get_prices)) -> Any:
    """Current Naira price of one unit of `symbol`."""
    symbol = normalize_symbol(symbol)
    price = await prices.get_price(symbol)
    return success("Price fetched", PriceOut(symbol=symbol, price_ngn=price).model_dump())


@router.get("/{symbol}/to-naira", response_model=ApiResponse)
async def crypto_to_naira(
    symbol: str,
    amount: str = Query(..., description="Crypto amount, e.g. 0.5"),
    prices: Any = Depends(deps.get_prices),
) -> Any:
    result = await convert_crypto_to_naira(prices, amount, symbol)
    out = ConversionOut(symbol=normalize_symbol(symbol), amount=amount, result=result)
    return success("Conversion successful", out.model_dump())


@router.get("/{symbol}/from-naira", response_model=ApiResponse)
async def naira_to_crypto(
    symbol: str,
    amount: str = Query(..., description="Naira amount, e.g. 150000"),
    prices: Any = Depends(deps.get_prices),
) -> Any:
    result = await convert_naira_to_crypto(prices, amount, symbol)
    out = ConversionOut(symbol=normalize_symbol(symbol), amount=amount, result=result)
    return success("Conversion successful", out.model_dump())
