"""Public IPv4 detection via plain-text "what is my IP" services."""

import logging
import re
import time
from typing import Sequence

import requests

from cfddns.config import IP_CONNECT_TIMEOUT_SECONDS, IP_REQUEST_TIMEOUT_SECONDS
from cfddns.core.logs import SUCCESS

logger = logging.getLogger(__name__)

_IPV4_PATTERN = re.compile(r"^([0-9]{1,3})\.([0-9]{1,3})\.([0-9]{1,3})\.([0-9]{1,3})$")


class AllServicesFailed(Exception):
    """Raised when no configured service returned a usable address."""

    def __init__(self, services: Sequence[str]):
        self.services = list(services)
        super().__init__(f"All {len(self.services)} IP detection services failed")


class NetworkUnavailable(Exception):
    """Raised when no public IP could be obtained within the wait budget."""


def is_valid_ipv4(value: str) -> bool:
    """Return ``True`` for a dotted-quad IPv4 address with a nonzero first octet."""
    match = _IPV4_PATTERN.match(value)
    if not match:
        return False
    octets = [int(o) for o in match.groups()]
    return all(o <= 255 for o in octets) and octets[0] != 0


def resolve_public_ip(
    services: Sequence[str],
    *,
    timeout: float = IP_REQUEST_TIMEOUT_SECONDS,
    connect_timeout: float = IP_CONNECT_TIMEOUT_SECONDS,
) -> str:
    """Ask each service in order and return the first valid address.

    A service that errors out or answers with anything but a bare IPv4
    address is skipped; there is no retry within one service.
    Raises ``AllServicesFailed`` if every service is exhausted.
    """
    for service in services:
        logger.debug("Attempting to get public IP from: %s", service)
        try:
            resp = requests.get(service, timeout=(connect_timeout, timeout))
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Failed to connect to %s: %s", service, exc)
            continue

        candidate = resp.text.strip()
        if not is_valid_ipv4(candidate):
            logger.warning("Invalid IP received from %s: '%.64s'", service, candidate)
            continue

        logger.debug("Obtained IP %s from %s", candidate, service)
        return candidate

    logger.error("All %d IP detection services failed", len(services))
    raise AllServicesFailed(services)


def wait_for_public_ip(services: Sequence[str], *, max_wait: int, interval: int) -> str:
    """Poll :func:`resolve_public_ip` until it succeeds or *max_wait* elapses.

    Raises ``NetworkUnavailable`` once the elapsed time reaches *max_wait*.
    """
    logger.info("Waiting for stable network connection...")
    elapsed = 0
    while True:
        try:
            ip = resolve_public_ip(services)
        except AllServicesFailed as exc:
            logger.debug("No public IP yet: %s", exc)
        else:
            logger.log(SUCCESS, "Network connection established, public IP: %s", ip)
            return ip

        if elapsed >= max_wait:
            raise NetworkUnavailable(
                f"Timed out waiting for network connection after {max_wait}s"
            )
        logger.info("Retrying network connection in %ds (elapsed: %ds)", interval, elapsed)
        time.sleep(interval)
        elapsed += interval
