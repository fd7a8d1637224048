"""
M-Pesa gateway client tests.
All HTTP is mocked at the requests layer; nothing leaves the process.
"""

import base64
import json
from decimal import Decimal
from unittest.mock import patch, MagicMock

import pytest
import requests
from django.core.cache import cache

from apps.payments.exceptions import AuthenticationError, GatewayError, GatewayTimeoutError
from apps.payments.gateway import (
    DarajaClient, MockGatewayClient, MpesaConfig, get_gateway_client,
)

TIMESTAMP = "20241019120000"


def _response(status_code=200, body=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = status_code < 400
    if body is None:
        resp.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        resp.json.return_value = body
    return resp


TOKEN_OK = _response(200, {"access_token": "tok-123", "expires_in": "3599"})

PUSH_OK = {
    "MerchantRequestID":   "29115-34620561-1",
    "CheckoutRequestID":   "ws_CO_191220191020363925",
    "ResponseCode":        "0",
    "ResponseDescription": "Success. Request accepted for processing",
    "CustomerMessage":     "Success. Request accepted for processing",
}


@pytest.fixture
def config():
    return MpesaConfig(
        gateway="daraja",
        environment="sandbox",
        consumer_key="key",
        consumer_secret="secret",
        shortcode="174379",
        passkey="passkey",
        callback_url="https://trackflow.test/api/payments/callback/",
        timeout=5,
        base_url_override="http://mpesa-mock/",
    )


@pytest.fixture
def client(config):
    with patch.object(DarajaClient, "_timestamp", return_value=TIMESTAMP):
        yield DarajaClient(config)


# ═══════════════════════════════════════════════════════════════════════════════
# CONFIG & FACTORY
# ═══════════════════════════════════════════════════════════════════════════════

class TestConfig:

    def test_base_url_by_environment(self):
        assert MpesaConfig(environment="sandbox").base_url == "https://sandbox.safaricom.co.ke"
        assert MpesaConfig(environment="production").base_url == "https://api.safaricom.co.ke"

    def test_override_wins(self, config):
        assert config.base_url == "http://mpesa-mock"

    def test_secrets_not_in_repr(self, config):
        text = repr(config)
        assert "secret" not in text
        assert "passkey" not in text
        assert "174379" in text

    def test_from_settings(self):
        config = MpesaConfig.from_settings()
        assert config.gateway == "daraja"
        assert config.base_url == "http://mpesa-mock"
        assert config.consumer_key == "test-consumer-key"


class TestFactory:

    def test_daraja_from_settings(self):
        assert isinstance(get_gateway_client(), DarajaClient)

    def test_mock_by_tag(self):
        gateway = get_gateway_client(MpesaConfig(gateway="mock"))
        assert isinstance(gateway, MockGatewayClient)
        assert gateway.tag == "mock"

    def test_unknown_tag(self):
        with pytest.raises(ValueError):
            get_gateway_client(MpesaConfig(gateway="airtel"))


# ═══════════════════════════════════════════════════════════════════════════════
# ACCESS TOKEN
# ═══════════════════════════════════════════════════════════════════════════════

class TestAccessToken:

    def test_token_is_cached(self, client):
        with patch("apps.payments.gateway.requests.get", return_value=TOKEN_OK) as get:
            assert client.get_access_token() == "tok-123"
            assert client.get_access_token() == "tok-123"
        get.assert_called_once()
        url = get.call_args[0][0]
        assert url == "http://mpesa-mock/oauth/v1/generate?grant_type=client_credentials"
        assert get.call_args.kwargs["auth"] == ("key", "secret")
        assert get.call_args.kwargs["timeout"] == 5

    def test_short_lived_token_not_cached(self, client):
        short = _response(200, {"access_token": "tok-short", "expires_in": "30"})
        with patch("apps.payments.gateway.requests.get", return_value=short) as get:
            client.get_access_token()
            client.get_access_token()
        assert get.call_count == 2

    def test_rejected_credentials(self, client):
        with patch("apps.payments.gateway.requests.get",
                   return_value=_response(400, {"errorMessage": "Invalid credentials"})):
            with pytest.raises(AuthenticationError) as exc_info:
                client.get_access_token()
        assert exc_info.value.context["status_code"] == 400
        assert "secret" not in str(exc_info.value)

    def test_missing_token_field(self, client):
        with patch("apps.payments.gateway.requests.get", return_value=_response(200, {})):
            with pytest.raises(AuthenticationError):
                client.get_access_token()

    def test_unreachable(self, client):
        with patch("apps.payments.gateway.requests.get",
                   side_effect=requests.ConnectionError("no route")):
            with pytest.raises(AuthenticationError):
                client.get_access_token()

    def test_timeout(self, client):
        with patch("apps.payments.gateway.requests.get", side_effect=requests.Timeout()):
            with pytest.raises(GatewayTimeoutError):
                client.get_access_token()


# ═══════════════════════════════════════════════════════════════════════════════
# STK PUSH
# ═══════════════════════════════════════════════════════════════════════════════

class TestStkPush:

    def test_payload(self, client):
        with patch("apps.payments.gateway.requests.get", return_value=TOKEN_OK), \
             patch("apps.payments.gateway.requests.post", return_value=_response(200, PUSH_OK)) as post:
            result = client.initiate_push_payment(
                "0712345678", Decimal("1500.60"), "TF-P100", "Payment for parcel TF-P100",
            )

        assert result.checkout_request_id == "ws_CO_191220191020363925"
        assert result.merchant_request_id == "29115-34620561-1"
        assert result.customer_message == "Success. Request accepted for processing"

        assert post.call_args[0][0] == "http://mpesa-mock/mpesa/stkpush/v1/processrequest"
        assert post.call_args.kwargs["headers"]["Authorization"] == "Bearer tok-123"
        payload = post.call_args.kwargs["json"]
        assert payload["Password"] == base64.b64encode(f"174379passkey{TIMESTAMP}".encode()).decode()
        assert payload["Timestamp"] == TIMESTAMP
        assert payload["Amount"] == 1501
        assert payload["PartyA"] == payload["PhoneNumber"] == "254712345678"
        assert payload["PartyB"] == payload["BusinessShortCode"] == "174379"
        assert payload["TransactionType"] == "CustomerPayBillOnline"
        assert payload["CallBackURL"] == "https://trackflow.test/api/payments/callback/"
        assert payload["AccountReference"] == "TF-P100"

    def test_business_rejection(self, client):
        body = {
            "requestId":    "6e86-45dd-91ac-fd5d4178ab523",
            "errorCode":    "400.002.02",
            "errorMessage": "Bad Request - Invalid PhoneNumber",
        }
        with patch("apps.payments.gateway.requests.get", return_value=TOKEN_OK), \
             patch("apps.payments.gateway.requests.post", return_value=_response(400, body)):
            with pytest.raises(GatewayError) as exc_info:
                client.initiate_push_payment("12", 850, "TF-P100", "Payment")
        assert exc_info.value.message == "Bad Request - Invalid PhoneNumber"
        assert exc_info.value.context["error_code"] == "400.002.02"
        assert not isinstance(exc_info.value, GatewayTimeoutError)

    def test_timeout(self, client):
        with patch("apps.payments.gateway.requests.get", return_value=TOKEN_OK), \
             patch("apps.payments.gateway.requests.post", side_effect=requests.Timeout()):
            with pytest.raises(GatewayTimeoutError):
                client.initiate_push_payment("0712345678", 850, "TF-P100", "Payment")

    def test_non_json_body(self, client):
        with patch("apps.payments.gateway.requests.get", return_value=TOKEN_OK), \
             patch("apps.payments.gateway.requests.post", return_value=_response(502)):
            with pytest.raises(GatewayError):
                client.initiate_push_payment("0712345678", 850, "TF-P100", "Payment")

    def test_expired_token_dropped_on_401(self, client):
        body = {"errorCode": "404.001.03", "errorMessage": "Invalid Access Token"}
        with patch("apps.payments.gateway.requests.get", return_value=TOKEN_OK), \
             patch("apps.payments.gateway.requests.post", return_value=_response(401, body)):
            with pytest.raises(GatewayError):
                client.initiate_push_payment("0712345678", 850, "TF-P100", "Payment")
        assert cache.get("mpesa:token:sandbox:174379") is None


# ═══════════════════════════════════════════════════════════════════════════════
# STK QUERY
# ═══════════════════════════════════════════════════════════════════════════════

class TestStkQuery:

    def _query(self, client, body, status_code=200):
        with patch("apps.payments.gateway.requests.get", return_value=TOKEN_OK), \
             patch("apps.payments.gateway.requests.post",
                   return_value=_response(status_code, body)) as post:
            result = client.query_status("ws_CO_191220191020363925")
        return result, post

    def test_completed(self, client):
        result, post = self._query(client, {
            "ResponseCode": "0",
            "ResultCode":   "0",
            "ResultDesc":   "The service request is processed successfully.",
        })
        assert result.definitive and result.success
        assert post.call_args[0][0] == "http://mpesa-mock/mpesa/stkpushquery/v1/query"
        assert post.call_args.kwargs["json"]["CheckoutRequestID"] == "ws_CO_191220191020363925"

    def test_cancelled(self, client):
        result, _ = self._query(client, {"ResultCode": "1032", "ResultDesc": "Request cancelled by user"})
        assert result.definitive
        assert not result.success
        assert result.result_code == 1032

    def test_still_processing_code(self, client):
        result, _ = self._query(client, {"ResultCode": "4999", "ResultDesc": "The transaction is still under processing"})
        assert not result.definitive

    def test_error_body_is_inconclusive(self, client):
        result, _ = self._query(client, {
            "errorCode":    "500.001.1001",
            "errorMessage": "The transaction is being processed",
        }, status_code=500)
        assert not result.definitive
        assert result.result_desc == "The transaction is being processed"


# ═══════════════════════════════════════════════════════════════════════════════
# MOCK GATEWAY
# ═══════════════════════════════════════════════════════════════════════════════

class TestMockGateway:

    def test_accepts_every_push_offline(self):
        gateway = MockGatewayClient(MpesaConfig(gateway="mock"))
        with patch("apps.payments.gateway.requests.post") as post:
            first = gateway.initiate_push_payment("0712345678", 850, "TF-P100", "Payment")
            second = gateway.initiate_push_payment("0712345678", 850, "TF-P100", "Payment")
        post.assert_not_called()
        assert first.checkout_request_id.startswith("ws_CO_")
        assert first.checkout_request_id != second.checkout_request_id

    def test_query_never_definitive(self):
        gateway = MockGatewayClient(MpesaConfig(gateway="mock"))
        assert not gateway.query_status("ws_CO_anything").definitive


# ═══════════════════════════════════════════════════════════════════════════════
# DARAJA MOCK SERVER (docker/mocks)
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.fixture
def daraja_mock():
    import importlib.util
    from pathlib import Path
    path = Path(__file__).resolve().parent.parent / "docker" / "mocks" / "daraja_server.py"
    module_spec = importlib.util.spec_from_file_location("daraja_mock_server", path)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


class TestDarajaMockServer:

    def test_silent_number_still_answers_status_query(self, daraja_mock):
        with patch.object(daraja_mock.time, "sleep"), \
             patch.object(daraja_mock.urllib.request, "urlopen") as urlopen:
            daraja_mock._send_callback("http://app/cb", "ws_CO_silent", "1-2-1", 850,
                                       "254712345672", deliver=False)
        urlopen.assert_not_called()
        assert daraja_mock.RESULTS["ws_CO_silent"][0] == 0

    def test_declined_number_gets_failure_callback(self, daraja_mock):
        with patch.object(daraja_mock.time, "sleep"), \
             patch.object(daraja_mock.urllib.request, "urlopen") as urlopen:
            daraja_mock._send_callback("http://app/cb", "ws_CO_declined", "1-2-1", 850, "254712345671")
        assert daraja_mock.RESULTS["ws_CO_declined"] == (1, "Insufficient funds")
        request = urlopen.call_args[0][0]
        assert request.full_url == "http://app/cb"
        body = json.loads(request.data)
        assert body["Body"]["stkCallback"]["ResultCode"] == 1
