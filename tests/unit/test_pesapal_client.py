from datetime import datetime, timezone

import httpx
import pytest

from backend.payments.errors import PaymentSessionError, TransactionStatusError, UpstreamAuthError
from backend.payments.pesapal_client import PesapalClient, _parse_expiry, status_of


def _client(handler, **kwargs):
    http = httpx.Client(base_url="https://pesapal.test/v3/api", transport=httpx.MockTransport(handler))
    return PesapalClient(consumer_key="ck", consumer_secret="cs", http=http, **kwargs)


def test_request_token_sends_credentials_and_caches(fake_pesapal):
    seen = {}

    def handler(request):
        if request.url.path.endswith("/Auth/RequestToken"):
            seen["body"] = request.read()
        return fake_pesapal.handler(request)

    c = _client(handler)
    assert c.token_cache.get_token() == "tok-1"
    assert c.token_cache.get_token() == "tok-1"
    assert fake_pesapal.token_calls == 1
    assert b'"consumer_key":"ck"' in seen["body"].replace(b" ", b"")


def test_request_token_http_error_raises_upstream_auth(fake_pesapal):
    fake_pesapal.fail_auth = True
    c = _client(fake_pesapal.handler)
    with pytest.raises(UpstreamAuthError):
        c.token_cache.get_token()


def test_request_token_error_body_with_200_raises():
    def handler(request):
        return httpx.Response(200, json={"token": None, "error": {"message": "invalid key"}})

    c = _client(handler)
    with pytest.raises(UpstreamAuthError) as exc:
        c.request_token()
    assert "invalid key" in str(exc.value)


def test_missing_credentials_raise_without_network():
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        return httpx.Response(200, json={})

    http = httpx.Client(base_url="https://pesapal.test/v3/api", transport=httpx.MockTransport(handler))
    c = PesapalClient(consumer_key="", consumer_secret="", http=http)
    with pytest.raises(UpstreamAuthError):
        c.token_cache.get_token()
    assert calls["n"] == 0


def test_timeout_on_auth_is_upstream_auth_error():
    def handler(request):
        raise httpx.ConnectTimeout("timeout", request=request)

    c = _client(handler)
    with pytest.raises(UpstreamAuthError):
        c.token_cache.get_token()


def test_submit_order_request_uses_bearer(fake_pesapal):
    c = _client(fake_pesapal.handler)
    res = c.submit_order_request({"id": "order_abc", "amount": 10.0})
    assert res["order_tracking_id"] == "trk-1"
    assert res["redirect_url"].startswith("https://pay.pesapal.test/")
    assert fake_pesapal.submit_calls[0]["authorization"] == "Bearer tok-1"


def test_submit_order_request_rejected(fake_pesapal):
    fake_pesapal.fail_submit = True
    c = _client(fake_pesapal.handler)
    with pytest.raises(PaymentSessionError):
        c.submit_order_request({"id": "order_abc", "amount": 10.0})


def test_submit_order_request_unreachable():
    def handler(request):
        if request.url.path.endswith("/Auth/RequestToken"):
            return httpx.Response(200, json={"token": "t", "expires_in": 300})
        raise httpx.ReadTimeout("slow", request=request)

    c = _client(handler)
    with pytest.raises(PaymentSessionError):
        c.submit_order_request({"id": "order_abc"})


def test_get_transaction_status_passes_tracking_id(fake_pesapal):
    fake_pesapal.statuses["trk-9"] = "Completed"
    c = _client(fake_pesapal.handler)
    payload = c.get_transaction_status("trk-9")
    assert status_of(payload) == "Completed"
    assert fake_pesapal.status_calls == ["trk-9"]


def test_get_transaction_status_http_error():
    def handler(request):
        if request.url.path.endswith("/Auth/RequestToken"):
            return httpx.Response(200, json={"token": "t", "expires_in": 300})
        return httpx.Response(503, text="unavailable")

    c = _client(handler)
    with pytest.raises(TransactionStatusError):
        c.get_transaction_status("trk-1")


def test_parse_expiry_variants():
    now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert _parse_expiry({"expires_in": 60}, now) == datetime(2024, 1, 1, 12, 1, tzinfo=timezone.utc)
    parsed = _parse_expiry({"expiryDate": "2024-01-01T12:05:00.1234567Z"}, now)
    assert parsed.replace(microsecond=0) == datetime(2024, 1, 1, 12, 5, tzinfo=timezone.utc)
    assert _parse_expiry({}, now) == datetime(2024, 1, 1, 12, 5, tzinfo=timezone.utc)


def test_get_transaction_status_error_body_with_200(fake_pesapal):
    fake_pesapal.status_error = True
    c = _client(fake_pesapal.handler)
    with pytest.raises(TransactionStatusError) as exc:
        c.get_transaction_status("trk-1")
    assert "payment_details_not_found" in str(exc.value)


def test_get_transaction_status_without_status_description():
    def handler(request):
        if request.url.path.endswith("/Auth/RequestToken"):
            return httpx.Response(200, json={"token": "t", "expires_in": 300})
        return httpx.Response(200, json={"order_tracking_id": "trk-1", "status": "200"})

    c = _client(handler)
    with pytest.raises(TransactionStatusError):
        c.get_transaction_status("trk-1")
