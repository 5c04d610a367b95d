"""
Korapay merchant API: bank list and payment verification.
"""

from typing import Any, Dict, List

import httpx

from app.core.logging_config import get_logger
from app.core.service_errors import PaymentServiceError, classify

logger = get_logger(__name__)


class KorapayClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = "https://api.korapay.com/merchant/api/v1",
        public_key: str = "",
        secret_key: str = "",
    ):
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._public_key = public_key
        self._secret_key = secret_key

    def _headers(self, use_public_key: bool = False) -> Dict[str, str]:
        key = self._public_key if use_public_key else self._secret_key
        return {
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }

    async def _get(self, path: str, use_public_key: bool = False, **params: Any) -> Any:
        """GET a Korapay endpoint and return its `data` field."""
        try:
            response = await self._client.get(
                f"{self._base_url}{path}",
                params=params or None,
                headers=self._headers(use_public_key),
            )
            body = response.json()
            if not isinstance(body, dict):
                raise ValueError(f"unexpected response body from Korapay: {type(body).__name__}")
        except Exception as e:
            raise classify(e, "payment") from e

        if response.is_error or not body.get("status"):
            message = body.get("message") or f"HTTP {response.status_code}"
            logger.warning("Korapay request rejected", path=path, status_code=response.status_code, message=message)
            raise PaymentServiceError(f"Payment operation failed: {message}")
        return body.get("data")

    async def get_banks(self, country_code: str = "NG") -> List[Dict[str, Any]]:
        """Banks supported for payouts, as returned by Korapay (name, code, ...)."""
        return await self._get("/misc/banks", use_public_key=True, countryCode=country_code) or []

    async def verify_payment(self, reference: str) -> Dict[str, Any]:
        """Status of a charge: {"status", "amount", "currency", "reference"}."""
        data = await self._get(f"/transactions/verify/{reference}") or {}
        if not isinstance(data, dict):
            raise PaymentServiceError("Payment operation failed: unexpected charge payload")
        return {
            "status": data.get("status"),
            "amount": data.get("amount"),
            "currency": data.get("currency"),
            "reference": data.get("reference", reference),
        }
