"""
Cryptocurrency prices in Naira (CoinGecko).

PriceService.get_price is the outbound call that gets circuit-breaker
protection; the conversion helpers are module functions that take the
(guarded) service so their lookups go through the breaker as well.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Optional

import httpx
from cachetools import TTLCache

from app.core.logging_config import get_logger
from app.core.service_errors import PriceServiceError, classify

logger = get_logger(__name__)

INVALID_ARGUMENT = "INVALID_ARGUMENT"
VS_CURRENCY = "ngn"

SYMBOL_TO_COINGECKO_ID: Dict[str, str] = {
    "ETH": "ethereum",
    "BTC": "bitcoin",
    "USDT": "tether",
    "USDC": "usd-coin",
}

# Decimal places when converting Naira into crypto
CRYPTO_PRECISION: Dict[str, int] = {
    "BTC": 8,
    "ETH": 6,
}
DEFAULT_PRECISION = 2


def normalize_symbol(symbol: str) -> str:
    """Upper-case a ticker and check it is supported."""
    normalized = (symbol or "").strip().upper()
    if normalized not in SYMBOL_TO_COINGECKO_ID:
        raise PriceServiceError(f"Unsupported cryptocurrency: {symbol}", code=INVALID_ARGUMENT)
    return normalized


def parse_amount(amount: str) -> Decimal:
    """Parse a positive decimal amount, ignoring thousands separators."""
    try:
        value = Decimal(str(amount).replace(",", "").strip())
    except InvalidOperation:
        raise PriceServiceError(f"Invalid amount: {amount}", code=INVALID_ARGUMENT) from None
    if not value.is_finite() or value < 0:
        raise PriceServiceError(f"Invalid amount: {amount}", code=INVALID_ARGUMENT)
    return value


class PriceService:
    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = "https://api.coingecko.com/api/v3",
        api_key: str = "",
        cache_ttl_seconds: int = 60,
    ):
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._cache: TTLCache = TTLCache(maxsize=len(SYMBOL_TO_COINGECKO_ID) * 2, ttl=cache_ttl_seconds)

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["x-cg-demo-api-key"] = self._api_key
        return headers

    async def get_price(self, symbol: str) -> float:
        """Current price of one unit of `symbol` in Naira. Cached per symbol."""
        symbol = normalize_symbol(symbol)
        cached: Optional[float] = self._cache.get(symbol)
        if cached is not None:
            return cached

        coin_id = SYMBOL_TO_COINGECKO_ID[symbol]
        try:
            response = await self._client.get(
                f"{self._base_url}/simple/price",
                params={"ids": coin_id, "vs_currencies": VS_CURRENCY},
                headers=self._headers(),
            )
            response.raise_for_status()
            data: Dict[str, Any] = response.json()
            price = float(data[coin_id][VS_CURRENCY])
        except Exception as e:
            raise classify(e, "price") from e

        if price <= 0:
            raise PriceServiceError(f"Price service failed: non-positive price for {symbol}")

        self._cache[symbol] = price
        logger.debug("Fetched price", symbol=symbol, price_ngn=price)
        return price


async def convert_crypto_to_naira(prices: Any, amount: str, symbol: str) -> str:
    """
    Naira value of `amount` units of `symbol`, e.g. "1,234,567.89".

    Args:
        prices: A PriceService, or a guarded proxy of one
        amount: Crypto amount as a decimal string
        symbol: Ticker (ETH, BTC, USDT, USDC)
    """
    symbol = normalize_symbol(symbol)
    value = parse_amount(amount)
    price = Decimal(str(await prices.get_price(symbol)))
    naira = (value * price).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{naira:,.2f}"


async def convert_naira_to_crypto(prices: Any, naira_amount: str, symbol: str) -> str:
    """Crypto amount for a Naira amount; 8 decimals for BTC, 6 for ETH, 2 otherwise."""
    symbol = normalize_symbol(symbol)
    value = parse_amount(naira_amount)
    price = Decimal(str(await prices.get_price(symbol)))
    precision = CRYPTO_PRECISION.get(symbol, DEFAULT_PRECISION)
    crypto = (value / price).quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP)
    return f"{crypto:.{precision}f}"
