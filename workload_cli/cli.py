# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Workload CLI - Main Command Line Interface

Command-line tool for tearing down services and one-off tasks.
"""

import logging
import sys
from typing import Optional

import click
from click.core import ParameterSource
from rich.console import Console

from . import __version__, config, display
from .errors import NoSuchTaskError
from .models import TeardownTarget, WorkloadKind
from .sessions import SessionResolver
from .store import MetadataStore
from .teardown import TeardownOrchestrator

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

console = Console()


@click.group()
@click.version_option(version=__version__)
def cli():
    """
    Workload CLI - Teardown of deployed workloads

    This tool provides commands for:
    - Deleting services from one or all environments of an application
    - Deleting one-off tasks from an environment or the default cluster
    """
    pass


@cli.group()
def workload():
    """Manage services and one-off tasks"""
    pass


@workload.command()
@click.option("--name", "-n", required=True, help="Name of the service or task")
@click.option(
    "--app",
    "-a",
    envvar=config.APP_ENV_VAR,
    help=f"Application name (default: ${config.APP_ENV_VAR})",
)
@click.option(
    "--env",
    "-e",
    help="Environment to delete from (default: all environments of the application)",
)
@click.option(
    "--default",
    "default_cluster",
    is_flag=True,
    help="Delete a one-off task from the default cluster",
)
@click.option("--yes", is_flag=True, help="Skip confirmation prompt")
@click.option("--region", help="AWS region (optional)")
@click.option("--profile", help="AWS profile (optional)")
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level (default: WARNING)",
)
def delete(
    name: str,
    app: Optional[str],
    env: Optional[str],
    default_cluster: bool,
    yes: bool,
    region: Optional[str],
    profile: Optional[str],
    log_level: str,
):
    """
    Delete a workload and its resources

    Stops running tasks, empties the image repository and artifact bucket, and
    deletes the CloudFormation stack in each environment. A service is removed
    from the application once it is gone from every environment.

    ⚠️  WARNING: This permanently deletes the workload's resources.

    Examples:

      # Delete the "backend" service from every environment
      workload-cli workload delete --name backend --app my-app

      # Delete the "db-migrate" task from the prod environment
      workload-cli workload delete --name db-migrate --app my-app --env prod

      # Delete the "test" task from the default cluster without confirmation
      workload-cli workload delete --name test --default --yes
    """
    logging.getLogger().setLevel(log_level)

    # An application picked up from the environment doesn't conflict with --default
    ctx = click.get_current_context()
    if default_cluster and ctx.get_parameter_source("app") == ParameterSource.ENVIRONMENT:
        app = None

    if default_cluster and app:
        console.print("[red]✗ Error: cannot specify both --app and --default[/red]")
        sys.exit(1)
    if default_cluster and env:
        console.print("[red]✗ Error: cannot specify both --env and --default[/red]")
        sys.exit(1)
    if not default_cluster and not app:
        console.print(
            f"[red]✗ Error: --app is required unless --default is set "
            f"(or set {config.APP_ENV_VAR})[/red]"
        )
        sys.exit(1)

    try:
        sessions = SessionResolver(profile=profile, region=region)
        store = MetadataStore(sessions.default())

        if default_cluster:
            target = TeardownTarget(
                name=name, kind=WorkloadKind.ONE_OFF_TASK, default_cluster=True
            )
        else:
            target = _resolve_target(store, name, app, env)

        orchestrator = TeardownOrchestrator(store, sessions)
        if target.kind is WorkloadKind.ONE_OFF_TASK:
            _ensure_task_exists(orchestrator, target)

        if not yes and not _confirm(target):
            console.print("[yellow]Deletion cancelled[/yellow]")
            return

        result = orchestrator.teardown(target)

        display.show_teardown_summary(result)

    except Exception as e:
        logger.error(f"Error deleting workload: {e}", exc_info=True)
        console.print(f"[red]✗ Error: {e}[/red]")
        sys.exit(1)


def _resolve_target(
    store: MetadataStore, name: str, app: str, env: Optional[str]
) -> TeardownTarget:
    """Validate app/env and decide whether the workload is a service or a task"""
    store.get_application(app)
    if env:
        store.get_environment(app, env)

    # Only services and jobs are registered in the application
    record = store.find_workload(app, name)
    if record is None:
        target = TeardownTarget(
            name=name, kind=WorkloadKind.ONE_OFF_TASK, app=app, env=env
        )
    else:
        target = TeardownTarget(
            name=name,
            kind=WorkloadKind.SERVICE,
            app=app,
            env=env,
            workload_type=record.type,
        )
    logger.info(f"Resolved {name} as {target.label}")
    return target


def _ensure_task_exists(orchestrator: TeardownOrchestrator, target: TeardownTarget):
    """Refuse to stop tasks or purge images for a name with no task stack"""
    if orchestrator.stack_exists(target):
        return
    if target.default_cluster:
        scope = "the default cluster"
    elif target.env:
        scope = f"environment {target.env} of application {target.app}"
    else:
        scope = f"any environment of application {target.app}"
    raise NoSuchTaskError(target.name, scope)


def _confirm(target: TeardownTarget) -> bool:
    """Ask the operator to confirm a destructive teardown"""
    console.print()
    console.print("[bold red]⚠️  WARNING: Workload Deletion[/bold red]")
    console.print("━" * 60)
    if target.kind is WorkloadKind.SERVICE:
        console.print(f"This will remove the {target.label} from the selected environments")
        console.print("and delete it from your application once it is gone everywhere.")
    else:
        console.print("This will delete the task's stack and stop all current executions.")
    console.print("━" * 60)
    console.print()

    if target.default_cluster:
        prompt = f"Are you sure you want to delete {target.name} from the default cluster?"
    elif target.env:
        prompt = (
            f"Are you sure you want to delete {target.name} from application "
            f"{target.app} and environment {target.env}?"
        )
    else:
        prompt = (
            f"Are you sure you want to delete {target.name} from application "
            f"{target.app} and all of its environments?"
        )
    return click.confirm(prompt, default=False)


def main():
    """Main entry point for the CLI"""
    cli()


if __name__ == "__main__":
    main()
