"""CLI entry point for callhome.

Registered as the ``callhome`` console script in pyproject.toml. Every option
can also come from a ``PERCONA_*`` environment variable; options given on the
command line win.
"""

from __future__ import annotations

from typing import Any

import click
from pydantic import ValidationError

from callhome import __version__
from callhome.config import OptOutSettings, Settings, get_settings
from callhome.errors import CallHomeError, ConfigError
from callhome.logging import get_logger, setup_logging
from callhome.telemetry.models import ReportSchema
from callhome.telemetry.orchestrator import Orchestrator, RunConfig

PRODUCT_FAMILIES_HELP = """\
Any product family string is accepted, but the telemetry service only
accepts: PRODUCT_FAMILY_PS, PRODUCT_FAMILY_PXC, PRODUCT_FAMILY_PXB,
PRODUCT_FAMILY_PSMDB, PRODUCT_FAMILY_PBM, PRODUCT_FAMILY_POSTGRESQL,
PRODUCT_FAMILY_PMM, PRODUCT_FAMILY_EVEREST, PRODUCT_FAMILY_PERCONA_TOOLKIT.

Set PERCONA_TELEMETRY_DISABLE=1 to turn telemetry off.
"""


def build_run_config(settings: Settings, **overrides: Any) -> RunConfig:
    """Merge command-line ``overrides`` (``None`` means unset) over ``settings``."""

    def pick(name: str, default: Any) -> Any:
        value = overrides.get(name)
        return default if value is None else value

    return RunConfig(
        product_family=pick("product_family", settings.product_family),
        product_version=pick("product_version", settings.product_version),
        operating_system=pick("operating_system", settings.operating_system),
        deployment=pick("deployment", settings.deployment_method),
        instance_id=pick("instance_id", settings.instance_id),
        state_path=pick("state_file", settings.telemetry_config_file_path),
        url=pick("url", settings.telemetry_url),
        timeout=pick("timeout", settings.send_timeout),
        schema=ReportSchema(pick("schema", settings.report_schema)),
        disabled=settings.telemetry_disable,
    )


@click.command(
    context_settings={"help_option_names": ["-h", "--help"]},
    epilog=PRODUCT_FAMILIES_HELP,
)
@click.version_option(version=__version__, prog_name="callhome")
@click.option("-f", "--product-family", help="Product family identifier.  [required]")
@click.option("-v", "--product-version", help="Product version.  [required]")
@click.option(
    "-s",
    "--operating-system",
    "--os-name",
    "operating_system",
    help="Operating system name.  [required]",
)
@click.option(
    "-d",
    "--deployment",
    "--hw-arch",
    "deployment",
    help="Deployment method (e.g. PACKAGE, DOCKER) or hardware architecture.  [required]",
)
@click.option("-i", "--instance-id", help="Instance ID.  [default: stored or autogenerated]")
@click.option(
    "-j",
    "--state-file",
    type=click.Path(dir_okay=False),
    help="File storing the instance ID and reported products.",
)
@click.option("-u", "--url", help="Telemetry service endpoint.")
@click.option(
    "-t",
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    help="Delivery timeout in seconds.",
)
@click.option(
    "--schema",
    type=click.Choice([s.value for s in ReportSchema]),
    help="Report field naming expected by the endpoint.",
)
@click.option("--verbose", is_flag=True, help="Log progress and the outgoing payload.")
@click.pass_context
def main(ctx: click.Context, verbose: bool, **options: Any) -> None:
    """Send a one-time telemetry report for a product installed on this host.

    Each product family is reported at most once per host; later runs for
    the same product do nothing.
    """
    # Opting out must succeed even when other PERCONA_* values are invalid
    if OptOutSettings().telemetry_disable:
        return

    try:
        settings = get_settings()
    except ValidationError as exc:
        raise click.UsageError(f"invalid PERCONA_* environment: {exc}", ctx=ctx) from exc

    setup_logging("DEBUG" if verbose else None)
    log = get_logger("callhome.cli")

    config = build_run_config(settings, **options)
    try:
        outcome = Orchestrator(config).run()
    except ConfigError as exc:
        raise click.UsageError(f"{exc}. See usage for details.", ctx=ctx) from exc
    except (CallHomeError, OSError) as exc:
        log.error("telemetry_run_failed", error=str(exc))
        raise click.ClickException(str(exc)) from exc

    log.info("telemetry_run_finished", outcome=outcome.value)
