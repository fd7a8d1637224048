"""
M-Pesa gateway clients.

DarajaClient talks to Safaricom's Daraja API (sandbox or production).
MockGatewayClient is the explicitly configured offline variant
(MPESA_GATEWAY = "mock"); nothing falls back to it implicitly.

Every failure leaves this module as AuthenticationError, GatewayError or
GatewayTimeoutError. Credentials never reach a log line.
"""

import base64
import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional

import requests
from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

from apps.payments.exceptions import AuthenticationError, GatewayError, GatewayTimeoutError
from apps.payments.utils import normalize_phone_number, to_whole_units

logger = logging.getLogger("trackflow.payments.gateway")

BASE_URLS = {
    "sandbox":    "https://sandbox.safaricom.co.ke",
    "production": "https://api.safaricom.co.ke",
}

# STK query result meaning "still under processing"; not an outcome yet.
STILL_PROCESSING_CODES = {4999}


# ── Configuration ─────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class MpesaConfig:
    gateway:         str = "daraja"
    environment:     str = "sandbox"
    consumer_key:    str = field(default="", repr=False)
    consumer_secret: str = field(default="", repr=False)
    shortcode:       str = "174379"
    passkey:         str = field(default="", repr=False)
    callback_url:    str = ""
    timeout:         float = 15.0
    base_url_override: str = ""

    @property
    def base_url(self) -> str:
        if self.base_url_override:
            return self.base_url_override.rstrip("/")
        return BASE_URLS.get(self.environment, BASE_URLS["sandbox"])

    @classmethod
    def from_settings(cls) -> "MpesaConfig":
        return cls(
            gateway         = getattr(settings, "MPESA_GATEWAY", "daraja"),
            environment     = getattr(settings, "MPESA_ENV", "sandbox"),
            consumer_key    = getattr(settings, "MPESA_CONSUMER_KEY", ""),
            consumer_secret = getattr(settings, "MPESA_CONSUMER_SECRET", ""),
            shortcode       = str(getattr(settings, "MPESA_SHORTCODE", "174379")),
            passkey         = getattr(settings, "MPESA_PASSKEY", ""),
            callback_url    = getattr(settings, "MPESA_CALLBACK_URL", ""),
            timeout         = float(getattr(settings, "MPESA_TIMEOUT", 15)),
            base_url_override = getattr(settings, "MPESA_BASE_URL", ""),
        )


# ── Results ───────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class PushPaymentResponse:
    checkout_request_id: str
    merchant_request_id: str
    customer_message: str


@dataclass(frozen=True)
class StatusQueryResult:
    result_code: Optional[int]
    result_desc: str
    definitive: bool

    @property
    def success(self) -> bool:
        return self.definitive and self.result_code == 0


# ── Interface ─────────────────────────────────────────────────────────────────
class PaymentGatewayClient:
    """All gateway clients implement this interface."""

    tag = None

    def __init__(self, config: MpesaConfig):
        self.config = config

    def get_access_token(self) -> str:
        raise NotImplementedError

    def initiate_push_payment(self, phone_number, amount, account_reference, description) -> PushPaymentResponse:
        raise NotImplementedError

    def query_status(self, checkout_request_id: str) -> StatusQueryResult:
        raise NotImplementedError

    def normalize_phone_number(self, phone_number) -> str:
        return normalize_phone_number(phone_number)


# ── Daraja ────────────────────────────────────────────────────────────────────
class DarajaClient(PaymentGatewayClient):
    """Safaricom Daraja STK push (Lipa na M-Pesa Online)."""

    tag = "daraja"

    TOKEN_PATH     = "/oauth/v1/generate?grant_type=client_credentials"
    STK_PUSH_PATH  = "/mpesa/stkpush/v1/processrequest"
    STK_QUERY_PATH = "/mpesa/stkpushquery/v1/query"
    TRANSACTION_TYPE = "CustomerPayBillOnline"
    TOKEN_EXPIRY_MARGIN = 60   # seconds shaved off expires_in before caching

    @property
    def _token_cache_key(self):
        return f"mpesa:token:{self.config.environment}:{self.config.shortcode}"

    def get_access_token(self) -> str:
        token = cache.get(self._token_cache_key)
        if token:
            return token

        try:
            resp = requests.get(
                f"{self.config.base_url}{self.TOKEN_PATH}",
                auth=(self.config.consumer_key, self.config.consumer_secret),
                timeout=self.config.timeout,
            )
        except requests.Timeout as exc:
            logger.error("M-Pesa token request timed out after %ss", self.config.timeout)
            raise GatewayTimeoutError("Timed out obtaining an M-Pesa access token") from exc
        except requests.RequestException as exc:
            logger.error("M-Pesa token request failed: %s", exc.__class__.__name__)
            raise AuthenticationError("Could not reach M-Pesa to obtain an access token") from exc

        if not resp.ok:
            logger.error("M-Pesa token request rejected: HTTP %s", resp.status_code)
            raise AuthenticationError(
                f"M-Pesa rejected the credentials (HTTP {resp.status_code})",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise AuthenticationError("M-Pesa token response was not JSON") from exc

        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise AuthenticationError("M-Pesa token response had no access_token")

        try:
            expires_in = int(data.get("expires_in", 3599))
        except (TypeError, ValueError):
            expires_in = 3599
        ttl = expires_in - self.TOKEN_EXPIRY_MARGIN
        if ttl > 0:
            cache.set(self._token_cache_key, token, ttl)
        logger.debug("M-Pesa access token refreshed (ttl %ss)", ttl)
        return token

    def initiate_push_payment(self, phone_number, amount, account_reference, description) -> PushPaymentResponse:
        phone = self.normalize_phone_number(phone_number)
        units = to_whole_units(amount)
        token = self.get_access_token()
        timestamp = self._timestamp()

        payload = {
            "BusinessShortCode": self.config.shortcode,
            "Password":          self._password(timestamp),
            "Timestamp":         timestamp,
            "TransactionType":   self.TRANSACTION_TYPE,
            "Amount":            units,
            "PartyA":            phone,
            "PartyB":            self.config.shortcode,
            "PhoneNumber":       phone,
            "CallBackURL":       self.config.callback_url,
            "AccountReference":  account_reference,
            "TransactionDesc":   description,
        }
        logger.info("STK push → %s for %s KES (ref %s)", phone, units, account_reference)

        data = self._post(self.STK_PUSH_PATH, payload, token, operation="STK push")

        if str(data.get("ResponseCode")) != "0":
            message = (data.get("errorMessage") or data.get("ResponseDescription")
                       or "Failed to initiate STK push")
            logger.warning("STK push rejected for %s: %s (%s)", phone, message, data.get("errorCode"))
            raise GatewayError(message, error_code=data.get("errorCode"))

        checkout_request_id = data.get("CheckoutRequestID")
        if not checkout_request_id:
            raise GatewayError("M-Pesa accepted the push without a CheckoutRequestID")

        logger.info("STK push accepted: checkout %s", checkout_request_id)
        return PushPaymentResponse(
            checkout_request_id=checkout_request_id,
            merchant_request_id=data.get("MerchantRequestID", ""),
            customer_message=data.get("CustomerMessage", ""),
        )

    def query_status(self, checkout_request_id: str) -> StatusQueryResult:
        """
        Ask Daraja what happened to a push. "Still processing" and error
        bodies come back as non-definitive results, transport failures raise.
        """
        token = self.get_access_token()
        timestamp = self._timestamp()
        payload = {
            "BusinessShortCode": self.config.shortcode,
            "Password":          self._password(timestamp),
            "Timestamp":         timestamp,
            "CheckoutRequestID": checkout_request_id,
        }
        data = self._post(self.STK_QUERY_PATH, payload, token, operation="STK query")

        if data.get("ResultCode") is not None:
            try:
                code = int(data["ResultCode"])
            except (TypeError, ValueError):
                return StatusQueryResult(None, str(data.get("ResultDesc", "")), False)
            return StatusQueryResult(
                result_code=code,
                result_desc=data.get("ResultDesc", ""),
                definitive=code not in STILL_PROCESSING_CODES,
            )

        return StatusQueryResult(
            result_code=None,
            result_desc=data.get("errorMessage") or data.get("ResponseDescription") or "",
            definitive=False,
        )

    # ── helpers ──────────────────────────────────────────────────────────────
    def _timestamp(self) -> str:
        return timezone.localtime().strftime("%Y%m%d%H%M%S")

    def _password(self, timestamp: str) -> str:
        raw = f"{self.config.shortcode}{self.config.passkey}{timestamp}".encode()
        return base64.b64encode(raw).decode()

    def _post(self, path, payload, token, operation) -> dict:
        try:
            resp = requests.post(
                f"{self.config.base_url}{path}",
                json=payload,
                headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
                timeout=self.config.timeout,
            )
        except requests.Timeout as exc:
            logger.error("M-Pesa %s timed out after %ss", operation, self.config.timeout)
            raise GatewayTimeoutError(f"M-Pesa {operation} timed out") from exc
        except requests.RequestException as exc:
            logger.error("M-Pesa %s failed: %s", operation, exc)
            raise GatewayError(f"M-Pesa {operation} failed") from exc

        if resp.status_code == 401:
            cache.delete(self._token_cache_key)

        # Daraja reports business errors as JSON on 4xx/5xx, so read the body first.
        try:
            data = resp.json()
        except ValueError as exc:
            raise GatewayError(
                f"M-Pesa {operation} returned HTTP {resp.status_code} without a JSON body"
            ) from exc
        if not isinstance(data, dict):
            raise GatewayError(f"M-Pesa {operation} returned an unexpected body")
        return data


# ── Mock ──────────────────────────────────────────────────────────────────────
class MockGatewayClient(PaymentGatewayClient):
    """
    Offline stand-in for local development and demos.
    Accepts every push and never reports an outcome on query; drive
    completion by posting a callback to /api/payments/callback/.
    """

    tag = "mock"

    def get_access_token(self) -> str:
        return "mock-access-token"

    def initiate_push_payment(self, phone_number, amount, account_reference, description) -> PushPaymentResponse:
        phone = self.normalize_phone_number(phone_number)
        units = to_whole_units(amount)
        checkout_request_id = f"ws_CO_{timezone.now():%d%m%Y%H%M%S}{uuid.uuid4().hex[:8]}"
        merchant_request_id = f"mock-{uuid.uuid4().hex[:12]}"
        logger.info(
            "MPESA MOCK: push prompt sent to %s for %s KES. Ref: %s",
            phone, units, checkout_request_id,
        )
        return PushPaymentResponse(
            checkout_request_id=checkout_request_id,
            merchant_request_id=merchant_request_id,
            customer_message="Success. Request accepted for processing",
        )

    def query_status(self, checkout_request_id: str) -> StatusQueryResult:
        return StatusQueryResult(None, "The transaction is being processed", False)


# ── Factory ───────────────────────────────────────────────────────────────────
GATEWAY_CLIENTS = {
    DarajaClient.tag:      DarajaClient,
    MockGatewayClient.tag: MockGatewayClient,
}


def get_gateway_client(config: Optional[MpesaConfig] = None) -> PaymentGatewayClient:
    config = config or MpesaConfig.from_settings()
    cls = GATEWAY_CLIENTS.get(config.gateway)
    if not cls:
        raise ValueError(f"Unknown M-Pesa gateway: {config.gateway}")
    return cls(config)
