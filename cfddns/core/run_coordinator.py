"""Run coordinator — one lock-protected update cycle, start to exit code."""

import logging
from enum import Enum, IntEnum
from pathlib import Path

from cfddns.config import CONFIG_FILE, LOCK_FILE, LOG_FILE, TOKEN_FILE
from cfddns.core.cloudflare_client import CloudflareAPIError, CloudflareClient
from cfddns.core.credentials import CredentialError, load_token
from cfddns.core.ip_resolver import NetworkUnavailable, wait_for_public_ip
from cfddns.core.logs import SUCCESS, rotate_log
from cfddns.core.models import DomainMode, RunResult
from cfddns.core.record_selector import RecordSelector
from cfddns.core.record_updater import RecordUpdater
from cfddns.core.run_lock import LockError, RunLock
from cfddns.core.settings import ConfigError, Settings, load_settings

logger = logging.getLogger(__name__)


class RunState(Enum):
    INIT = "init"
    LOCKED = "locked"
    NETWORK_READY = "network_ready"
    TOKEN_VERIFIED = "token_verified"
    PROCESSING = "processing"
    SUMMARIZED = "summarized"
    DONE = "done"
    FAILED = "failed"


class ExitCode(IntEnum):
    SUCCESS = 0
    FATAL = 1
    PARTIAL = 2


class FatalRunError(Exception):
    """A precondition failed; nothing useful can happen in this run."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


def exit_code_for(result: RunResult) -> ExitCode:
    return ExitCode.SUCCESS if result.all_succeeded else ExitCode.PARTIAL


class RunCoordinator:
    """Drives ``INIT → LOCKED → … → DONE``, or ``FAILED`` on a fatal error.

    Per-record and per-zone problems never abort the run; they are
    counted and reported through the exit code instead.
    """

    def __init__(
        self,
        config_file: Path = CONFIG_FILE,
        token_file: Path = TOKEN_FILE,
        lock_file: Path = LOCK_FILE,
        log_file: Path = LOG_FILE,
    ) -> None:
        self._config_file = config_file
        self._token_file = token_file
        self._lock_file = lock_file
        self._log_file = log_file
        self._cf = CloudflareClient()
        self.state = RunState.INIT
        self.result: RunResult | None = None

    def _enter(self, state: RunState) -> None:
        logger.debug("Run state: %s → %s", self.state.value, state.value)
        self.state = state

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(self) -> ExitCode:
        """Execute one update cycle and return the process exit code."""
        logger.info("=== Starting DDNS update cycle ===")
        try:
            return self._run()
        except FatalRunError as exc:
            self._enter(RunState.FAILED)
            logger.error("%s", exc)
            logger.error("Critical error encountered. Exiting...")
            return ExitCode.FATAL

    def _run(self) -> ExitCode:
        settings, token = self._load()
        if settings.detailed_logging:
            logging.getLogger("cfddns").setLevel(logging.DEBUG)

        try:
            rotate_log(self._log_file, settings.log_max_lines)
        except OSError as exc:
            logger.warning("Log rotation failed: %s", exc)

        lock = RunLock(self._lock_file)
        try:
            acquired = lock.acquire()
        except LockError as exc:
            raise FatalRunError("LOCK", str(exc)) from exc
        if not acquired:
            logger.info("Another instance is already running. Exiting gracefully.")
            self._enter(RunState.DONE)
            return ExitCode.SUCCESS

        try:
            self._enter(RunState.LOCKED)
            ip = self._wait_for_network(settings)
            self._verify_token(token)
            result = self.process(settings, token, ip)
            self._summarize()
            self._enter(RunState.DONE)
            logger.info("=== Update cycle complete ===")
            return exit_code_for(result)
        finally:
            lock.release()

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _load(self) -> tuple[Settings, str]:
        logger.info("Loading configuration from %s", self._config_file)
        try:
            settings = load_settings(self._config_file)
        except ConfigError as exc:
            raise FatalRunError("CONFIG_LOAD", str(exc)) from exc
        try:
            token = load_token(self._token_file)
        except CredentialError as exc:
            raise FatalRunError("CONFIG_LOAD", str(exc)) from exc
        logger.info(
            "Configuration loaded (token length: %d, mode: %s, %d IP services)",
            len(token), settings.domain_mode.value, len(settings.ip_services),
        )
        return settings, token

    def _wait_for_network(self, settings: Settings) -> str:
        try:
            ip = wait_for_public_ip(
                settings.ip_services,
                max_wait=settings.max_wait_for_net,
                interval=settings.wait_interval,
            )
        except NetworkUnavailable as exc:
            raise FatalRunError("NETWORK", str(exc)) from exc
        self._enter(RunState.NETWORK_READY)
        return ip

    def _verify_token(self, token: str) -> None:
        logger.info("Verifying API token...")
        try:
            valid = self._cf.verify_token(token)
        except CloudflareAPIError as exc:
            raise FatalRunError(
                "TOKEN_VERIFY",
                f"API token verification failed - token may be invalid, expired, "
                f"or permissions insufficient ({exc})",
            ) from exc
        if not valid:
            raise FatalRunError("TOKEN_VERIFY", "API token verification failed")
        logger.log(SUCCESS, "API token is valid")
        self._enter(RunState.TOKEN_VERIFIED)

    def process(self, settings: Settings, token: str, ip: str) -> RunResult:
        """Select candidate records and update each one, strictly in order."""
        self._enter(RunState.PROCESSING)
        logger.info("Checking which DNS records need updating to current IP: %s", ip)
        if settings.domain_mode is DomainMode.SINGLE_TARGET:
            logger.info("Operating in SINGLE_TARGET mode: will update record %s",
                        settings.target_record_name)
        elif settings.domain_mode is DomainMode.EXPLICIT_LIST:
            logger.info("Operating in EXPLICIT_LIST mode: will check %d selected record(s)",
                        len(settings.selected_records))
        else:
            logger.info("Operating in ALL_ZONES mode: will check all A records in all zones")

        selection = RecordSelector(self._cf, token).select(settings)
        updater = RecordUpdater(self._cf, token, settings)
        result = selection.result.merge(updater.process(selection.candidates, ip))
        self.result = result
        return result

    def _summarize(self) -> None:
        result = self.result
        logger.info("=== Update cycle summary ===")
        logger.info("DNS Records: %s", result.summary)
        if result.failures:
            logger.warning("Failed operations details:")
            for operation, message in result.failures:
                logger.warning("  - %s: %s", operation, message)
        self._enter(RunState.SUMMARIZED)
