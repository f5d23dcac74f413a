"""Cloudflare API client — zone and DNS record operations."""

import logging
import re
import time
from typing import Any

import requests

from cfddns.config import (
    API_MAX_ATTEMPTS,
    API_TIMEOUT_SECONDS,
    CLOUDFLARE_API_BASE,
    RATE_LIMIT_ERROR_CODE,
)
from cfddns.core.retry import linear, retry_call

logger = logging.getLogger(__name__)

# Progressive delay between attempts: attempt * 2 seconds
_PROGRESSIVE_STEP = 2
# Extra wait when rate-limited: attempt * 10 seconds
_RATE_LIMIT_STEP = 10

# Cloudflare API tokens are 40-char alphanumeric strings with hyphens/underscores
_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_\-]{20,}$")


class CloudflareAPIError(Exception):
    """Raised when a Cloudflare API call fails."""

    def __init__(self, status_code: int, errors: list[dict]):
        self.status_code = status_code
        self.errors = errors
        messages = "; ".join(e.get("message", str(e)) for e in errors)
        super().__init__(f"Cloudflare API error ({status_code}): {messages}")

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429 or any(
            e.get("code") == RATE_LIMIT_ERROR_CODE for e in self.errors
        )


def sanitize_token(raw: str) -> str:
    """Extract a clean API token from user input.

    Users sometimes paste the full curl command or a ``Bearer <token>`` string.
    This helper strips common prefixes/wrapping and validates the result.

    Raises ``ValueError`` if the cleaned value doesn't look like a CF API token.
    """
    cleaned = raw.strip()

    if (cleaned.startswith('"') and cleaned.endswith('"')) or \
       (cleaned.startswith("'") and cleaned.endswith("'")):
        cleaned = cleaned[1:-1].strip()

    if "Bearer" in cleaned:
        idx = cleaned.rfind("Bearer ")
        cleaned = cleaned[idx + len("Bearer "):].strip()
    elif cleaned.lower().startswith("curl "):
        raise ValueError(
            "It looks like you pasted a curl command.\n"
            "Please paste only the API token value (the 40-character string)."
        )

    cleaned = cleaned.strip().strip('"').strip("'").strip()

    if not cleaned:
        raise ValueError("Token is empty.")
    if not _TOKEN_PATTERN.match(cleaned):
        raise ValueError(
            "Invalid API token format.\n"
            "A Cloudflare API token should be an alphanumeric string "
            "(typically 40 characters)."
        )
    return cleaned


class CloudflareClient:
    """Thin wrapper around the Cloudflare v4 REST API.

    The *token* is accepted per-method call so it never needs to be stored
    as instance state.  Every call is retried up to three times; callers
    only ever see parsed JSON with ``success: true`` or a
    ``CloudflareAPIError``.
    """

    def __init__(self) -> None:
        self._session = requests.Session()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    def _request(
        self,
        method: str,
        path: str,
        token: str,
        *,
        params: dict | None = None,
        json_body: dict | None = None,
    ) -> dict[str, Any]:
        """Execute an API call with retry, progressive delay and rate-limit backoff."""
        url = f"{CLOUDFLARE_API_BASE}{path}"
        headers = self._headers(token)
        logger.debug("API call: %s %s", method, url)

        def attempt_call(attempt: int) -> dict[str, Any]:
            try:
                resp = self._session.request(
                    method, url, headers=headers, params=params, json=json_body,
                    timeout=API_TIMEOUT_SECONDS,
                )
            except requests.RequestException as exc:
                logger.warning(
                    "Request failed for %s %s (attempt %d/%d): %s",
                    method, path, attempt, API_MAX_ATTEMPTS, exc,
                )
                raise CloudflareAPIError(0, [{"message": f"Connection failed: {exc}"}]) from exc

            try:
                data = resp.json()
            except ValueError as exc:
                logger.warning(
                    "Invalid JSON response from API (attempt %d/%d): %.200s",
                    attempt, API_MAX_ATTEMPTS, resp.text,
                )
                raise CloudflareAPIError(
                    resp.status_code, [{"message": "Invalid JSON response"}]
                ) from exc

            if not isinstance(data, dict) or data.get("success") is not True:
                errors = data.get("errors") if isinstance(data, dict) else None
                if not isinstance(errors, list) or not errors:
                    errors = [{"message": "Unknown error"}]
                errors = [e if isinstance(e, dict) else {"message": str(e)} for e in errors]
                error = CloudflareAPIError(resp.status_code, errors)
                logger.warning(
                    "API returned error (attempt %d/%d): %s",
                    attempt, API_MAX_ATTEMPTS, error,
                )
                logger.debug("Full response: %.500s", resp.text)
                if error.is_rate_limited and attempt < API_MAX_ATTEMPTS:
                    wait = attempt * _RATE_LIMIT_STEP
                    logger.warning("Rate limit detected, waiting %ds", wait)
                    time.sleep(wait)
                raise error

            logger.debug("API call successful: %s %s", method, path)
            return data

        try:
            return retry_call(
                attempt_call,
                attempts=API_MAX_ATTEMPTS,
                delay=linear(_PROGRESSIVE_STEP),
                retry_on=(CloudflareAPIError,),
                description=f"{method} {path}",
            )
        except CloudflareAPIError:
            logger.error("API call %s %s failed after %d attempts", method, path, API_MAX_ATTEMPTS)
            raise

    def _paginate(self, path: str, token: str, params: dict) -> list[dict]:
        items: list[dict] = []
        page = 1
        while True:
            data = self._request(
                "GET", path, token, params={**params, "page": page},
            )
            items.extend(data.get("result") or [])
            info = data.get("result_info") or {}
            if page >= info.get("total_pages", 1):
                break
            page += 1
        return items

    # ------------------------------------------------------------------
    # Token verification
    # ------------------------------------------------------------------

    def verify_token(self, token: str) -> bool:
        """Verify *token* against ``/user/tokens/verify``.

        Returns ``True`` when the API reports success.
        Raises ``CloudflareAPIError`` once the retry budget is spent.
        """
        data = self._request("GET", "/user/tokens/verify", token)
        return data.get("success") is True

    # ------------------------------------------------------------------
    # Zones
    # ------------------------------------------------------------------

    def list_zones(self, token: str) -> list[dict]:
        """Return all zones accessible with *token*.

        Each dict contains at least ``id`` and ``name``.
        """
        zones = self._paginate("/zones", token, {"per_page": 50})
        return [{"id": z.get("id", ""), "name": z.get("name", "")} for z in zones]

    def find_zone(self, token: str, name: str) -> dict | None:
        """Return the zone named exactly *name*, or ``None``."""
        data = self._request("GET", "/zones", token, params={"name": name})
        for z in data.get("result") or []:
            if z.get("id") and z.get("name") == name:
                return {"id": z["id"], "name": z["name"]}
        return None

    # ------------------------------------------------------------------
    # DNS Records
    # ------------------------------------------------------------------

    def list_a_records(self, token: str, zone_id: str, name: str | None = None) -> list[dict]:
        """Return A records in *zone_id*, optionally only those named *name*."""
        params: dict[str, Any] = {"type": "A", "per_page": 100}
        if name:
            params["name"] = name
        raw = self._paginate(f"/zones/{zone_id}/dns_records", token, params)
        return [_normalize_record(r) for r in raw]

    def get_record(self, token: str, zone_id: str, record_id: str) -> dict:
        """Fetch a single DNS record."""
        data = self._request("GET", f"/zones/{zone_id}/dns_records/{record_id}", token)
        return _normalize_record(data.get("result") or {})

    def update_record(
        self, token: str, zone_id: str, record_id: str, payload: dict
    ) -> dict:
        """Overwrite DNS record *record_id* with *payload*."""
        data = self._request(
            "PUT",
            f"/zones/{zone_id}/dns_records/{record_id}",
            token,
            json_body=payload,
        )
        return _normalize_record(data.get("result") or {})


# ------------------------------------------------------------------
# Record normalisation helpers
# ------------------------------------------------------------------

def _normalize_record(raw: dict) -> dict:
    """Transform a Cloudflare API record into a consistent internal format.

    Missing fields come back as empty strings / ``None`` so callers can
    tell a malformed record apart from a real value.
    """
    return {
        "id": raw.get("id") or "",
        "type": raw.get("type") or "",
        "name": raw.get("name") or "",
        "content": raw.get("content") or "",
        "ttl": raw.get("ttl"),
        "proxied": raw.get("proxied"),
    }
