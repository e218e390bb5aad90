"""Midtrans Snap client. One instance lives on app.state for the lifetime of the process."""

import hashlib
import hmac
from typing import Optional

import httpx
import structlog
from fastapi import Request
from pydantic import BaseModel

from masjidku.core.config import settings
from masjidku.core.exceptions import UpstreamError

logger = structlog.get_logger(__name__)


class SnapTransaction(BaseModel):
    token: str
    redirect_url: Optional[str] = None


class MidtransClient:
    def __init__(
        self,
        server_key: Optional[str],
        base_url: str,
        timeout: float = 15.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.server_key = server_key
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def create_snap_transaction(
        self,
        order_id: str,
        gross_amount: int,
        customer_name: str,
        customer_email: Optional[str] = None,
    ) -> SnapTransaction:
        if not self.server_key:
            raise UpstreamError("Payment gateway is not configured")

        customer = {"first_name": customer_name}
        if customer_email:
            customer["email"] = customer_email
        body = {
            "transaction_details": {"order_id": order_id, "gross_amount": gross_amount},
            "customer_details": customer,
        }
        try:
            response = await self._client.post(
                f"{self.base_url}/snap/v1/transactions",
                json=body,
                auth=(self.server_key, ""),
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.warning("midtrans_snap_failed", order_id=order_id, error=str(e))
            raise UpstreamError("Failed to create payment transaction") from e

        token = data.get("token")
        if not token:
            logger.warning("midtrans_snap_missing_token", order_id=order_id)
            raise UpstreamError("Payment gateway returned no token")
        return SnapTransaction(token=token, redirect_url=data.get("redirect_url"))

    async def aclose(self) -> None:
        await self._client.aclose()


def build_midtrans_client() -> MidtransClient:
    return MidtransClient(
        server_key=settings.midtrans_server_key,
        base_url=settings.midtrans_snap_base_url,
        timeout=settings.midtrans_timeout_seconds,
    )


def notification_signature(order_id: str, status_code: str, gross_amount: str, server_key: str) -> str:
    raw = f"{order_id}{status_code}{gross_amount}{server_key}"
    return hashlib.sha512(raw.encode("utf-8")).hexdigest()


def verify_notification_signature(
    order_id: str,
    status_code: Optional[str],
    gross_amount: Optional[str],
    signature_key: Optional[str],
    server_key: Optional[str],
) -> bool:
    if not (status_code and gross_amount and signature_key and server_key):
        return False
    expected = notification_signature(order_id, status_code, gross_amount, server_key)
    return hmac.compare_digest(expected, signature_key)


def get_midtrans_client(request: Request) -> MidtransClient:
    return request.app.state.midtrans_client
