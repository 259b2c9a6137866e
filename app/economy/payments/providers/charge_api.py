from __future__ import annotations

import httpx
import structlog

from app.economy.payments.errors import PaymentProviderError
from app.economy.payments.providers.base import (
    Checkout,
    CheckoutRequest,
    ProviderStatus,
    WebhookEvent,
)
from app.economy.payments.providers.charge_events import (
    CHARGE_STATUS_MAP,
    latest_charge_status,
    parse_charge_event,
    parse_money,
)
from app.economy.payments.signature import verify_signature

logger = structlog.get_logger(__name__)

API_VERSION = "2018-03-22"


class ChargeApiProvider:
    """Hosted-charge provider speaking JSON over HTTPS with HMAC-signed webhooks."""

    name = "charge_api"

    def __init__(
        self,
        *,
        api_url: str,
        api_key: str,
        webhook_secret: str,
        redirect_url: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self._redirect_url = redirect_url
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._api_url,
            timeout=self._timeout_seconds,
            transport=self._transport,
            headers={
                "X-CC-Api-Key": self._api_key,
                "X-CC-Version": API_VERSION,
                "Content-Type": "application/json",
            },
        )

    async def create_checkout(self, request: CheckoutRequest) -> Checkout:
        body = {
            "name": request.description,
            "description": request.description,
            "pricing_type": "fixed_price",
            "local_price": {"amount": str(request.amount), "currency": request.currency},
            "metadata": {
                "payment_id": str(request.payment_id),
                "user_id": str(request.user_id),
                "payment_type": request.payment_type,
                "payment_method_id": request.payment_method_id,
            },
            "redirect_url": self._redirect_url,
        }
        try:
            async with self._client() as client:
                response = await client.post("/charges", json=body)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "payment_provider_checkout_failed",
                provider=self.name,
                payment_id=str(request.payment_id),
                error_type=type(exc).__name__,
            )
            raise PaymentProviderError("checkout creation failed") from exc

        charge = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(charge, dict) or not charge.get("code"):
            raise PaymentProviderError("checkout response is missing the charge code")
        return Checkout(
            external_payment_id=str(charge["code"]),
            checkout_url=charge.get("hosted_url"),
            raw=charge,
        )

    async def fetch_status(self, external_payment_id: str) -> ProviderStatus:
        try:
            async with self._client() as client:
                response = await client.get(f"/charges/{external_payment_id}")
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "payment_provider_status_failed",
                provider=self.name,
                external_payment_id=external_payment_id,
                error_type=type(exc).__name__,
            )
            raise PaymentProviderError("status lookup failed") from exc

        charge = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(charge, dict):
            raise PaymentProviderError("status response is missing the charge")
        provider_status = latest_charge_status(charge)
        amount, currency = parse_money(charge.get("pricing"))
        return ProviderStatus(
            external_payment_id=external_payment_id,
            status=CHARGE_STATUS_MAP.get(provider_status, "pending"),
            amount=amount,
            currency=currency,
            raw=charge,
        )

    def verify_signature(self, raw_body: bytes, signature: str | None) -> bool:
        return verify_signature(self._webhook_secret, raw_body, signature)

    def parse_event(self, payload: dict[str, object]) -> WebhookEvent | None:
        return parse_charge_event(payload)
