"""
Construction of the breaker-guarded service clients.

Built once at application startup and injected into routes, so breaker
configuration is visible here rather than patched onto global objects.
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from app.core.config import Settings
from app.core.guarded_service import GuardedService
from app.core.logging_config import get_logger
from app.services.blockchain import EthereumRpcClient
from app.services.payment import KorapayClient
from app.services.price import PriceService

logger = get_logger(__name__)

BLOCKCHAIN_GUARDED_METHODS = ("get_balance", "get_block_number", "verify_transaction")
PRICE_GUARDED_METHODS = ("get_price",)
PAYMENT_GUARDED_METHODS = ("get_banks", "verify_payment")


@dataclass
class ServiceContainer:
    http_client: httpx.AsyncClient
    blockchain: GuardedService
    prices: GuardedService
    payments: GuardedService

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "ServiceContainer":
        client = http_client or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)

        breaker_options = {
            "failure_threshold": settings.BREAKER_FAILURE_THRESHOLD,
            "reset_timeout_ms": settings.BREAKER_RESET_TIMEOUT_MS,
            "call_timeout_ms": settings.breaker_call_timeout_ms,
        }

        blockchain = GuardedService(
            EthereumRpcClient(
                client,
                rpc_url=settings.eth_rpc_url,
                required_confirmations=settings.REQUIRED_CONFIRMATIONS,
            )
        )
        prices = GuardedService(
            PriceService(
                client,
                base_url=settings.COINGECKO_API_URL,
                api_key=settings.COINGECKO_API_KEY,
                cache_ttl_seconds=settings.PRICE_CACHE_TTL_SECONDS,
            )
        )
        payments = GuardedService(
            KorapayClient(
                client,
                base_url=settings.KORAPAY_BASE_URL,
                public_key=settings.KORAPAY_PUBLIC_KEY,
                secret_key=settings.KORAPAY_SECRET_KEY,
            )
        )

        for proxy, methods in (
            (blockchain, BLOCKCHAIN_GUARDED_METHODS),
            (prices, PRICE_GUARDED_METHODS),
            (payments, PAYMENT_GUARDED_METHODS),
        ):
            for method in methods:
                proxy.guard(method, **breaker_options)

        logger.info(
            "Service clients ready",
            network=settings.BLOCKCHAIN_NETWORK,
            failure_threshold=breaker_options["failure_threshold"],
            reset_timeout_ms=breaker_options["reset_timeout_ms"],
            call_timeout_ms=breaker_options["call_timeout_ms"],
        )
        return cls(http_client=client, blockchain=blockchain, prices=prices, payments=payments)

    async def aclose(self) -> None:
        await self.http_client.aclose()
