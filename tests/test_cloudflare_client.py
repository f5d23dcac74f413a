"""Tests for core.cloudflare_client — API interactions with mocked responses."""

from unittest.mock import MagicMock, call, patch

import pytest
import requests

from cfddns.core.cloudflare_client import (
    CloudflareAPIError,
    CloudflareClient,
    _normalize_record,
    sanitize_token,
)


def _mock_response(json_data, status_code=200):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = json_data
    resp.text = str(json_data)
    resp.headers = {}
    return resp


def _ok(result=None, **extra):
    return _mock_response({"success": True, "errors": [], "result": result, **extra})


class TestNormalizeRecord:
    def test_a_record(self):
        raw = {
            "id": "r1", "type": "A", "name": "example.com",
            "content": "1.2.3.4", "ttl": 300, "proxied": True,
        }
        rec = _normalize_record(raw)
        assert rec == {
            "id": "r1", "type": "A", "name": "example.com",
            "content": "1.2.3.4", "ttl": 300, "proxied": True,
        }

    def test_missing_fields_are_blank(self):
        rec = _normalize_record({"id": "r1"})
        assert rec["content"] == ""
        assert rec["ttl"] is None
        assert rec["proxied"] is None


class TestSanitizeToken:
    def test_strips_bearer_prefix(self):
        token = "a" * 40
        assert sanitize_token(f"Bearer {token}") == token

    def test_strips_quotes(self):
        token = "abcDEF123_-" * 4
        assert sanitize_token(f'  "{token}"\n') == token

    def test_rejects_curl_command(self):
        with pytest.raises(ValueError, match="curl"):
            sanitize_token("curl -X GET https://api.cloudflare.com/client/v4/user/tokens/verify")

    def test_rejects_short_value(self):
        with pytest.raises(ValueError, match="Invalid API token format"):
            sanitize_token("short")


@patch("cfddns.core.cloudflare_client.time.sleep")
@patch("cfddns.core.cloudflare_client.requests.Session")
class TestRequestRetries:
    def test_sends_bearer_and_json_headers(self, mock_session_cls, mock_sleep):
        session = mock_session_cls.return_value
        session.request.return_value = _ok({"status": "active"})

        assert CloudflareClient().verify_token("tok") is True

        _, kwargs = session.request.call_args
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
        assert kwargs["headers"]["Content-Type"] == "application/json"
        mock_sleep.assert_not_called()

    def test_connection_error_retried_with_progressive_delay(self, mock_session_cls, mock_sleep):
        session = mock_session_cls.return_value
        session.request.side_effect = [
            requests.ConnectionError("down"),
            requests.Timeout("slow"),
            _ok({"status": "active"}),
        ]

        assert CloudflareClient().verify_token("tok") is True
        assert session.request.call_count == 3
        assert mock_sleep.call_args_list == [call(2), call(4)]

    def test_malformed_json_is_retried(self, mock_session_cls, mock_sleep):
        bad = MagicMock(status_code=502, text="<html>Bad gateway</html>")
        bad.json.side_effect = ValueError("no json")
        session = mock_session_cls.return_value
        session.request.side_effect = [bad, _ok({"status": "active"})]

        assert CloudflareClient().verify_token("tok") is True
        assert session.request.call_count == 2

    def test_rate_limit_waits_longer(self, mock_session_cls, mock_sleep):
        limited = _mock_response(
            {"success": False, "errors": [{"code": 10013, "message": "Rate limited"}]},
            status_code=429,
        )
        session = mock_session_cls.return_value
        session.request.side_effect = [limited, _ok({"status": "active"})]

        assert CloudflareClient().verify_token("tok") is True
        # rate-limit wait (1 * 10) then the progressive delay (1 * 2)
        assert mock_sleep.call_args_list == [call(10), call(2)]

    def test_no_rate_limit_wait_after_final_attempt(self, mock_session_cls, mock_sleep):
        session = mock_session_cls.return_value
        session.request.return_value = _mock_response(
            {"success": False, "errors": [{"code": 10013, "message": "Rate limited"}]},
            status_code=429,
        )

        with pytest.raises(CloudflareAPIError, match="Rate limited"):
            CloudflareClient().verify_token("tok")
        assert session.request.call_count == 3
        assert mock_sleep.call_args_list == [call(10), call(2), call(20), call(4)]

    def test_api_error_raised_after_three_attempts(self, mock_session_cls, mock_sleep):
        session = mock_session_cls.return_value
        session.request.return_value = _mock_response(
            {"success": False, "errors": [{"code": 9109, "message": "Invalid token"}]},
            status_code=403,
        )

        with pytest.raises(CloudflareAPIError, match="Invalid token") as exc_info:
            CloudflareClient().list_zones("bad-token")
        assert exc_info.value.status_code == 403
        assert session.request.call_count == 3
        # no sleep after the final attempt
        assert mock_sleep.call_args_list == [call(2), call(4)]

    def test_success_false_without_errors(self, mock_session_cls, mock_sleep):
        session = mock_session_cls.return_value
        session.request.return_value = _mock_response({"success": False})

        with pytest.raises(CloudflareAPIError, match="Unknown error"):
            CloudflareClient().verify_token("tok")


@patch("cfddns.core.cloudflare_client.time.sleep")
@patch("cfddns.core.cloudflare_client.requests.Session")
class TestEndpoints:
    def test_list_zones_paginates(self, mock_session_cls, mock_sleep):
        session = mock_session_cls.return_value
        session.request.side_effect = [
            _ok([{"id": "z1", "name": "example.com"}], result_info={"total_pages": 2}),
            _ok([{"id": "z2", "name": "test.dev"}], result_info={"total_pages": 2}),
        ]

        zones = CloudflareClient().list_zones("tok")
        assert zones == [{"id": "z1", "name": "example.com"}, {"id": "z2", "name": "test.dev"}]
        pages = [c.kwargs["params"]["page"] for c in session.request.call_args_list]
        assert pages == [1, 2]

    def test_find_zone_by_exact_name(self, mock_session_cls, mock_sleep):
        session = mock_session_cls.return_value
        session.request.return_value = _ok([{"id": "z1", "name": "example.com"}])

        zone = CloudflareClient().find_zone("tok", "example.com")
        assert zone == {"id": "z1", "name": "example.com"}
        args, kwargs = session.request.call_args
        assert args[1].endswith("/zones")
        assert kwargs["params"] == {"name": "example.com"}

    def test_find_zone_none_when_empty(self, mock_session_cls, mock_sleep):
        session = mock_session_cls.return_value
        session.request.return_value = _ok([])
        assert CloudflareClient().find_zone("tok", "missing.com") is None

    def test_list_a_records_filters_by_name(self, mock_session_cls, mock_sleep):
        session = mock_session_cls.return_value
        session.request.return_value = _ok(
            [
                {"id": "r1", "type": "A", "name": "home.x.com", "content": "1.1.1.1", "ttl": 1, "proxied": False},
                {"id": "r2", "type": "A", "name": "home.x.com", "content": "2.2.2.2", "ttl": 1, "proxied": True},
            ],
            result_info={"total_pages": 1},
        )

        records = CloudflareClient().list_a_records("tok", "z1", name="home.x.com")
        assert [r["id"] for r in records] == ["r1", "r2"]
        args, kwargs = session.request.call_args
        assert args[1].endswith("/zones/z1/dns_records")
        assert kwargs["params"]["type"] == "A"
        assert kwargs["params"]["name"] == "home.x.com"

    def test_update_record_puts_payload(self, mock_session_cls, mock_sleep):
        session = mock_session_cls.return_value
        payload = {"type": "A", "name": "x.com", "content": "5.6.7.8", "ttl": 1, "proxied": False}
        session.request.return_value = _ok({"id": "r1", **payload})

        rec = CloudflareClient().update_record("tok", "z1", "r1", payload)
        assert rec["content"] == "5.6.7.8"
        args, kwargs = session.request.call_args
        assert args[0] == "PUT"
        assert args[1].endswith("/zones/z1/dns_records/r1")
        assert kwargs["json"] == payload

    def test_get_record(self, mock_session_cls, mock_sleep):
        session = mock_session_cls.return_value
        session.request.return_value = _ok(
            {"id": "r1", "type": "A", "name": "x.com", "content": "1.2.3.4", "ttl": 120, "proxied": True}
        )

        rec = CloudflareClient().get_record("tok", "z1", "r1")
        assert rec["ttl"] == 120
        assert rec["proxied"] is True
