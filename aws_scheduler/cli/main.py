"""
Main CLI entry point for AWS Scheduler.

Runs one scheduling pass and prints its report.
"""

import contextlib
import functools
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.logging import RichHandler

from aws_scheduler import __version__
from aws_scheduler.auth.iam_auth import CrossAccountAuthenticator
from aws_scheduler.core.config import ConfigManager, SchedulerConfig
from aws_scheduler.core.exceptions import (
    AuthenticationError, ConfigurationError, SchedulerError, ServiceError
)
from aws_scheduler.environment.client import EnvironmentManagerClient
from aws_scheduler.reporting.report import render_report
from aws_scheduler.services.executor import AccountActionExecutor
from aws_scheduler.services.locks import ColdStandbyLock, ConsulKV
from aws_scheduler.services.orchestrator import SchedulingOrchestrator


console = Console()

# Exit codes for different error types
EXIT_SUCCESS = 0
EXIT_GENERAL_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_AUTH_ERROR = 3
EXIT_SERVICE_ERROR = 4


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True
    )
    # botocore is very chatty at DEBUG
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)


def build_orchestrator(config: SchedulerConfig, stack: contextlib.ExitStack) -> SchedulingOrchestrator:
    """Wire the real collaborators for a pass.

    The HTTP clients are registered on ``stack`` and closed when it unwinds.
    """
    environment_manager = stack.enter_context(EnvironmentManagerClient(
        config.em_url, token=config.em_token, timeout=config.request_timeout
    ))
    lock = ColdStandbyLock(stack.enter_context(
        ConsulKV(config.consul_url, token=config.consul_token, timeout=config.request_timeout)
    ))
    authenticator = CrossAccountAuthenticator(config)

    executor_factory = functools.partial(
        AccountActionExecutor.for_account,
        authenticator=authenticator,
        lock=lock,
        region=config.aws_region,
        autoscaling_concurrency=config.autoscaling_concurrency,
        what_if=config.what_if,
        timeout=config.request_timeout
    )
    return SchedulingOrchestrator(environment_manager, executor_factory)


@click.command()
@click.option(
    "--what-if",
    is_flag=True,
    help="Report intended changes without performing them",
)
@click.option(
    "--account",
    "accounts",
    multiple=True,
    help="Limit the pass to this account name (repeatable)",
)
@click.option(
    "--environment",
    help="Regular expression environment names must match",
)
@click.option(
    "--list-skipped",
    is_flag=True,
    help="List skipped instances in the report",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON configuration file",
)
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    help="Print the report as JSON",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Enable debug logging",
)
@click.version_option(version=__version__)
def main(
    what_if: bool = False,
    accounts: Tuple[str, ...] = (),
    environment: Optional[str] = None,
    list_skipped: bool = False,
    config_file: Optional[Path] = None,
    as_json: bool = False,
    verbose: bool = False,
) -> None:
    """
    AWS Scheduler - switch instances on and off on schedule.

    Runs a single pass over every account known to Environment Manager.
    """
    setup_logging(verbose)

    # Flags can only switch behaviour on; unset options defer to file and environment
    overrides = {
        'what_if': True if what_if else None,
        'account_allow_list': list(accounts) if accounts else None,
        'environment_filter': environment,
        'list_skipped_instances': True if list_skipped else None,
    }

    try:
        config = ConfigManager().load_config(config_file, overrides)
        with contextlib.ExitStack() as stack:
            orchestrator = build_orchestrator(config, stack)
            report = orchestrator.run_pass(config)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {escape(str(e))}[/red]")
        sys.exit(EXIT_CONFIG_ERROR)
    except AuthenticationError as e:
        console.print(f"[red]Authentication error: {escape(str(e))}[/red]")
        sys.exit(EXIT_AUTH_ERROR)
    except ServiceError as e:
        console.print(f"[red]Service error: {escape(str(e))}[/red]")
        sys.exit(EXIT_SERVICE_ERROR)
    except SchedulerError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(EXIT_GENERAL_ERROR)
    except Exception as e:
        console.print(f"[red]Unexpected error: {escape(str(e))}[/red]")
        console.print("[dim]Please report this issue with the full error message.[/dim]")
        sys.exit(EXIT_GENERAL_ERROR)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        if config.what_if:
            console.print("[yellow]What-if mode: no changes were made[/yellow]")
        render_report(report, console)

    sys.exit(EXIT_SUCCESS if report.success else EXIT_GENERAL_ERROR)


if __name__ == "__main__":
    main()
