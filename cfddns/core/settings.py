"""Settings — load and validate ``config.json``, write the default file."""

import json
import logging
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from cfddns.config import (
    APEX_SENTINEL,
    CONFIG_FILE,
    DEFAULT_IP_SERVICES,
    DEFAULT_LOG_MAX_LINES,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_WAIT_FOR_NET,
    DEFAULT_RUN_INTERVAL,
    DEFAULT_SLEEP_BETWEEN_RETRIES,
    DEFAULT_WAIT_INTERVAL,
    MAX_RETRIES_RANGE,
    MAX_WAIT_FOR_NET_RANGE,
    SLEEP_BETWEEN_RETRIES_RANGE,
    STATE_DIR,
)
from cfddns.core.models import DomainMode, SelectedRecord

logger = logging.getLogger(__name__)

# Names written by the shell-based setup wizard
_LEGACY_MODES = {
    "SIMPLE": DomainMode.SINGLE_TARGET,
    "SPECIFIC": DomainMode.EXPLICIT_LIST,
    "ALL": DomainMode.ALL_ZONES,
}

# systemd time span, e.g. "5min", "1h", "30s"
_RUN_INTERVAL_PATTERN = re.compile(r"^\d+\s*(us|ms|s|sec|m|min|h|hr|d|w)?$")

_RECORD_FIELDS = ("zone_id", "record_id", "record_name", "record_type")


class ConfigError(Exception):
    """Raised when the configuration file is missing, unreadable or invalid."""


@dataclass(frozen=True)
class Settings:
    """Validated configuration for one run."""

    domain_mode: DomainMode
    domain: str = ""
    subdomain: str = ""
    selected_zones: tuple[str, ...] = ()
    selected_records: tuple[SelectedRecord, ...] = ()
    ip_services: tuple[str, ...] = DEFAULT_IP_SERVICES
    max_retries: int = DEFAULT_MAX_RETRIES
    sleep_between_retries: int = DEFAULT_SLEEP_BETWEEN_RETRIES
    max_wait_for_net: int = DEFAULT_MAX_WAIT_FOR_NET
    wait_interval: int = DEFAULT_WAIT_INTERVAL
    run_interval: str = DEFAULT_RUN_INTERVAL
    log_max_lines: int = DEFAULT_LOG_MAX_LINES
    detailed_logging: bool = True
    continue_on_error: bool = True
    skip_verification: bool = False
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def target_record_name(self) -> str:
        """Fully qualified record name for SINGLE_TARGET mode."""
        if self.subdomain == APEX_SENTINEL:
            return self.domain
        return f"{self.subdomain}.{self.domain}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        """Build settings from a parsed config mapping.

        Raises ``ConfigError`` when the active mode's required fields are
        absent or a knob is outside its accepted range.
        """
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a JSON object.")

        mode = _parse_mode(data.get("domain_mode", "SINGLE_TARGET"))
        domain = str(data.get("domain") or "").strip()
        subdomain = str(data.get("subdomain") or "").strip()

        if mode is DomainMode.SINGLE_TARGET and (not domain or not subdomain):
            raise ConfigError(
                "SINGLE_TARGET mode requires both 'domain' and 'subdomain' "
                f"(use '{APEX_SENTINEL}' for the root domain)."
            )

        raw_records = data.get("selected_records")
        if mode is DomainMode.EXPLICIT_LIST and not isinstance(raw_records, list):
            raise ConfigError("EXPLICIT_LIST mode requires a 'selected_records' list.")
        records = tuple(_parse_record(r) for r in raw_records or [])

        zones = data.get("selected_zones") or []
        if not isinstance(zones, list):
            raise ConfigError("'selected_zones' must be a list of zone names.")

        services = data.get("ip_services") or list(DEFAULT_IP_SERVICES)
        if not isinstance(services, list) or not all(isinstance(s, str) for s in services):
            raise ConfigError("'ip_services' must be a list of URLs.")
        custom = str(data.get("custom_ip_service") or "").strip()
        if custom and custom not in services:
            services = [*services, custom]

        run_interval = str(data.get("run_interval", DEFAULT_RUN_INTERVAL)).strip()
        if not _RUN_INTERVAL_PATTERN.match(run_interval):
            raise ConfigError(f"Invalid run_interval '{run_interval}' (expected e.g. '5min', '1h').")

        known = {f for f in cls.__dataclass_fields__ if f != "extra"} | {"custom_ip_service"}
        return cls(
            domain_mode=mode,
            domain=domain,
            subdomain=subdomain,
            selected_zones=tuple(str(z) for z in zones),
            selected_records=records,
            ip_services=tuple(s.strip() for s in services if s.strip()),
            max_retries=_int_in_range(data, "max_retries", DEFAULT_MAX_RETRIES, MAX_RETRIES_RANGE),
            sleep_between_retries=_int_in_range(
                data, "sleep_between_retries", DEFAULT_SLEEP_BETWEEN_RETRIES,
                SLEEP_BETWEEN_RETRIES_RANGE,
            ),
            max_wait_for_net=_int_in_range(
                data, "max_wait_for_net", DEFAULT_MAX_WAIT_FOR_NET, MAX_WAIT_FOR_NET_RANGE,
            ),
            wait_interval=_int_in_range(data, "wait_interval", DEFAULT_WAIT_INTERVAL, (1, None)),
            run_interval=run_interval,
            log_max_lines=_int_in_range(data, "log_max_lines", DEFAULT_LOG_MAX_LINES, (1, None)),
            detailed_logging=_bool(data, "detailed_logging", True),
            continue_on_error=_bool(data, "continue_on_error", True),
            skip_verification=_bool(data, "skip_verification", False),
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise back to the on-disk JSON shape."""
        data = asdict(self)
        data.pop("extra")
        data["domain_mode"] = self.domain_mode.value
        data["selected_zones"] = list(self.selected_zones)
        data["ip_services"] = list(self.ip_services)
        data["selected_records"] = [asdict(r) for r in self.selected_records]
        return data


# ------------------------------------------------------------------
# File helpers
# ------------------------------------------------------------------

def load_settings(path: Path = CONFIG_FILE) -> Settings:
    """Read and validate *path*.  Raises ``ConfigError`` on any problem."""
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Configuration file is not readable: {path} ({exc})") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Configuration file is not valid JSON: {path} ({exc})") from exc

    settings = Settings.from_dict(data)
    if settings.extra:
        logger.debug("Ignoring unknown config keys: %s", ", ".join(sorted(settings.extra)))
    if settings.domain_mode is DomainMode.EXPLICIT_LIST and not settings.selected_records:
        logger.warning("domain_mode is EXPLICIT_LIST, but no records are selected.")
    return settings


def write_default_config(path: Path = CONFIG_FILE) -> bool:
    """Create *path* with default settings if it doesn't exist.  Idempotent.

    Returns ``True`` if a new file was written.
    """
    if path.exists():
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    defaults = {
        "domain_mode": DomainMode.SINGLE_TARGET.value,
        "domain": "",
        "subdomain": "",
        "selected_zones": [],
        "selected_records": [],
        "ip_services": list(DEFAULT_IP_SERVICES),
        "max_retries": DEFAULT_MAX_RETRIES,
        "sleep_between_retries": DEFAULT_SLEEP_BETWEEN_RETRIES,
        "max_wait_for_net": DEFAULT_MAX_WAIT_FOR_NET,
        "wait_interval": DEFAULT_WAIT_INTERVAL,
        "run_interval": DEFAULT_RUN_INTERVAL,
        "log_max_lines": DEFAULT_LOG_MAX_LINES,
        "detailed_logging": True,
        "continue_on_error": True,
        "skip_verification": False,
    }
    path.write_text(json.dumps(defaults, indent=2), encoding="utf-8")
    return True


def init_state_dir() -> Path:
    """Create the ``~/.cfddns/`` directory.  Returns its path."""
    STATE_DIR.mkdir(parents=True, exist_ok=True)
    return STATE_DIR


# ------------------------------------------------------------------
# Field parsers
# ------------------------------------------------------------------

def _parse_mode(raw: Any) -> DomainMode:
    name = str(raw or "").strip().upper()
    if name in _LEGACY_MODES:
        return _LEGACY_MODES[name]
    try:
        return DomainMode(name)
    except ValueError:
        raise ConfigError(f"Invalid domain_mode: '{raw}'") from None


def _parse_record(raw: Any) -> SelectedRecord:
    """Accept either a mapping or a ``zone_id:record_id:name:type`` string."""
    if isinstance(raw, dict):
        values = [str(raw.get(f) or "").strip() for f in _RECORD_FIELDS]
    elif isinstance(raw, str):
        parts = [p.strip() for p in raw.split(":")]
        values = (parts + [""] * 4)[:4]
    else:
        values = [""] * 4
    return SelectedRecord(*values)


def _int_in_range(
    data: dict[str, Any], key: str, default: int, bounds: tuple[int, int | None],
) -> int:
    raw = data.get(key, default)
    if isinstance(raw, bool):
        raise ConfigError(f"'{key}' must be an integer, got {raw!r}.")
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"'{key}' must be an integer, got {raw!r}.") from None
    low, high = bounds
    if value < low or (high is not None and value > high):
        upper = high if high is not None else "∞"
        raise ConfigError(f"'{key}' must be between {low} and {upper}, got {value}.")
    return value


def _bool(data: dict[str, Any], key: str, default: bool) -> bool:
    raw = data.get(key, default)
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
        return raw.strip().lower() == "true"
    raise ConfigError(f"'{key}' must be true or false, got {raw!r}.")
