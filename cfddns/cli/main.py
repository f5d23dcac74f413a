"""cfddns — Click-based CLI entry point."""

import getpass
import json
import logging
import logging.handlers
import sys

import click

from cfddns.config import CONFIG_FILE, DEFAULT_IP_SERVICES, LOG_FILE, TOKEN_FILE
from cfddns.core.cloudflare_client import CloudflareAPIError, CloudflareClient, sanitize_token
from cfddns.core.credentials import CredentialError, load_token, mask_token, store_token
from cfddns.core.ip_resolver import AllServicesFailed, resolve_public_ip
from cfddns.core.run_coordinator import RunCoordinator
from cfddns.core.settings import (
    ConfigError,
    Settings,
    init_state_dir,
    load_settings,
    write_default_config,
)

_cf = CloudflareClient()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    # Also log to file if the state directory exists
    if LOG_FILE.parent.exists():
        # Reopens the file after rotate_log() swaps it out
        handlers.append(logging.handlers.WatchedFileHandler(str(LOG_FILE), encoding="utf-8"))
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )
    # Keep urllib3's connection chatter out of the log unless asked for
    logging.getLogger("urllib3").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _require_settings() -> Settings:
    try:
        return load_settings(CONFIG_FILE)
    except ConfigError as exc:
        click.echo(str(exc), err=True)
        raise SystemExit(1)


def _require_token() -> str:
    """Return the stored token or abort with a helpful message."""
    try:
        return load_token(TOKEN_FILE)
    except CredentialError as exc:
        click.echo(f"{exc}.  Run 'cfddns set-token' first.", err=True)
        raise SystemExit(1)


# ======================================================================
# CLI group
# ======================================================================

@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """cfddns — Keep Cloudflare A records pointed at this host's public IP."""
    # The log file handler is only attached when the state directory exists
    if ctx.invoked_subcommand == "run":
        init_state_dir()
    _setup_logging(verbose)


# ======================================================================
# init
# ======================================================================

@cli.command()
def init() -> None:
    """Create the state directory (~/.cfddns/) and a default config."""
    path = init_state_dir()
    if write_default_config(CONFIG_FILE):
        click.echo(f"Wrote default configuration to {CONFIG_FILE}")
    else:
        click.echo(f"Configuration already exists at {CONFIG_FILE}")
    click.echo(f"Initialised cfddns state in {path}")


# ======================================================================
# set-token
# ======================================================================

@cli.command("set-token")
@click.option("--skip-verify", is_flag=True, help="Store the token without checking it.")
def set_token_cmd(skip_verify: bool) -> None:
    """Store a Cloudflare API token (owner read/write only)."""
    raw_token = getpass.getpass("Cloudflare API token: ")
    try:
        token = sanitize_token(raw_token)
    except ValueError as exc:
        click.echo(str(exc), err=True)
        raise SystemExit(1)

    if not skip_verify:
        click.echo("Verifying token with Cloudflare…")
        try:
            _cf.verify_token(token)
        except CloudflareAPIError as exc:
            click.echo(f"Token verification failed: {exc}", err=True)
            raise SystemExit(1)
        click.echo("Token is valid and active.")

    init_state_dir()
    store_token(TOKEN_FILE, token)
    click.echo(f"Token stored in {TOKEN_FILE} ({mask_token(token)}).")


# ======================================================================
# run
# ======================================================================

@cli.command("run")
def run_cmd() -> None:
    """Run one update cycle (exit 0 = ok, 1 = fatal, 2 = partial failure)."""
    code = RunCoordinator().run()
    raise SystemExit(int(code))


# ======================================================================
# ip
# ======================================================================

@cli.command("ip")
def ip_cmd() -> None:
    """Print the current public IPv4 address."""
    try:
        services = load_settings(CONFIG_FILE).ip_services
    except ConfigError:
        services = DEFAULT_IP_SERVICES
    try:
        click.echo(resolve_public_ip(services))
    except AllServicesFailed as exc:
        click.echo(str(exc), err=True)
        raise SystemExit(1)


# ======================================================================
# verify
# ======================================================================

@cli.command("verify")
def verify_cmd() -> None:
    """Check the stored token and the zones it can reach."""
    token = _require_token()
    try:
        _cf.verify_token(token)
        zones = _cf.list_zones(token)
    except CloudflareAPIError as exc:
        click.echo(f"API connectivity test failed: {exc}", err=True)
        raise SystemExit(1)
    click.echo(f"Token is valid.  {len(zones)} zone(s) accessible.")


# ======================================================================
# zones
# ======================================================================

@cli.command("zones")
@click.option("--records", is_flag=True, help="Also list each zone's A records.")
def zones_cmd(records: bool) -> None:
    """List zones, optionally with A records compared to the current IP."""
    token = _require_token()
    try:
        zones = _cf.list_zones(token)
    except CloudflareAPIError as exc:
        click.echo(f"Failed to list zones: {exc}", err=True)
        raise SystemExit(1)
    if not zones:
        click.echo("No zones found for this API token.", err=True)
        raise SystemExit(1)

    current_ip = None
    if records:
        try:
            current_ip = resolve_public_ip(_require_settings().ip_services)
        except AllServicesFailed:
            click.echo("Could not determine the current public IP.", err=True)

    for z in zones:
        click.echo(f"{z['name']}  ({z['id']})")
        if not records:
            continue
        try:
            a_records = _cf.list_a_records(token, z["id"])
        except CloudflareAPIError as exc:
            click.echo(click.style(f"    ✗ {exc}", fg="red"))
            continue
        for r in a_records:
            line = f"    {r['name']} → {r['content']}  [{r['id']}]"
            if current_ip is None:
                click.echo(line)
            elif r["content"] == current_ip:
                click.echo(click.style(f"{line}  ✓ current", fg="green"))
            else:
                click.echo(click.style(f"{line}  ~ differs", fg="yellow"))


# ======================================================================
# show-config
# ======================================================================

@cli.command("show-config")
def show_config_cmd() -> None:
    """Print the effective configuration (token masked)."""
    settings = _require_settings()
    click.echo(json.dumps(settings.to_dict(), indent=2))
    try:
        click.echo(f"API token: {mask_token(load_token(TOKEN_FILE))}")
    except CredentialError as exc:
        click.echo(f"API token: not available ({exc})")


if __name__ == "__main__":
    cli()
