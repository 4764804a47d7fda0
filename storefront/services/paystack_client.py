# storefront/services/paystack_client.py
import hashlib
import hmac
from decimal import Decimal
from typing import Any, Dict

import requests
from requests import RequestException

from storefront.domain.errors import PaymentProviderError
from storefront.utils.logging import get_logger
from storefront.utils.retry import http_retry
from storefront.utils.settings import PaystackConfig

logger = get_logger(__name__)


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(str(amount)) * 100).to_integral_value())


def from_minor_units(amount) -> Decimal:
    return (Decimal(str(amount)) / 100).quantize(Decimal("0.01"))


class PaystackClient:
    """
    Paystack transaction API.

    Network failures, timeouts and non-2xx answers all surface as
    PaymentProviderError once the retries are used up.
    """

    def __init__(self, config: PaystackConfig):
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.timeout = config.timeout

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.secret_key}",
            "Content-Type": "application/json",
        }

    def initialize_transaction(
        self,
        email: str,
        amount: Decimal,
        reference: str,
        metadata: Dict[str, Any] | None = None,
    ) -> Dict[str, Any]:
        payload = {
            "email": email,
            "amount": to_minor_units(amount),
            "reference": reference,
            "currency": self.config.currency,
            "metadata": metadata or {},
            "callback_url": self.config.callback_url,
        }
        return self._call("POST", "/transaction/initialize", json=payload)

    def verify_transaction(self, reference: str) -> Dict[str, Any]:
        return self._call("GET", f"/transaction/verify/{reference}")

    def signature_for(self, raw_body: bytes) -> str:
        return hmac.new(self.config.secret_key.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()

    def verify_signature(self, raw_body: bytes, signature: str | None) -> bool:
        if not signature or not self.config.secret_key:
            return False
        return hmac.compare_digest(self.signature_for(raw_body), signature)

    def _call(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            body = self._request(method, path, **kwargs)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            message = self._provider_message(e.response) or f"Payment provider returned {status}"
            logger.error(f"Paystack {method} {path} failed: {status} {message}")
            raise PaymentProviderError(message, upstream_status=status) from e
        except RequestException as e:
            logger.error(f"Paystack {method} {path} failed: {e}")
            raise PaymentProviderError(f"Payment provider unreachable: {e.__class__.__name__}") from e

        if not body.get("status"):
            raise PaymentProviderError(body.get("message") or "Payment provider rejected the request")
        return body.get("data") or {}

    @http_retry()
    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.info(f"PaystackClient {method} {url}")

        resp = requests.request(method, url, headers=self._headers, timeout=self.timeout, **kwargs)
        resp.raise_for_status()
        return resp.json()

    @staticmethod
    def _provider_message(response) -> str | None:
        if response is None:
            return None
        try:
            return response.json().get("message")
        except ValueError:
            return None
