"""
Service commands for chainbox.

Chains never start their dependencies; start them here first:

    chainbox services start keys
    chainbox chains start devnet
"""

import click

from chainbox.commands.chains import get_chain_manager
from chainbox.commands.constants import DEFAULT_CONTAINER_NUMBER
from chainbox.commands.operation import OperationContext
from chainbox.commands.utils import console, handle_errors


@click.group(name="services")
def services():
    """Start and stop dependency services."""
    pass


@services.command(name="start")
@click.argument("names", nargs=-1, required=True)
@click.option(
    "--number",
    "-N",
    "container_number",
    type=int,
    default=DEFAULT_CONTAINER_NUMBER,
    show_default=True,
    help="Container number of the service instance.",
)
@click.option(
    "--skip-pull", is_flag=True, help="Do not pull the image before creating containers."
)
@click.option(
    "--quiet", "-q", is_flag=True, help="Only print errors and requested output."
)
@click.pass_context
@handle_errors
def start(click_ctx, names, container_number, skip_pull, quiet):
    """Start one or more services, creating their containers if needed."""
    ctx = OperationContext(
        args=list(names),
        container_number=container_number,
        skip_pull=skip_pull,
        quiet=quiet,
    )
    get_chain_manager(click_ctx).services.start_service(ctx)


@services.command(name="stop")
@click.argument("names", nargs=-1, required=True)
@click.option("--rm", is_flag=True, help="Remove the service containers after stopping.")
@click.option(
    "--rm-data", "rmd", is_flag=True, help="Remove the data containers as well."
)
@click.option(
    "--number",
    "-N",
    "container_number",
    type=int,
    default=DEFAULT_CONTAINER_NUMBER,
    show_default=True,
    help="Container number of the service instance.",
)
@click.option(
    "--quiet", "-q", is_flag=True, help="Only print errors and requested output."
)
@click.pass_context
@handle_errors
def stop(click_ctx, names, rm, rmd, container_number, quiet):
    """Stop one or more services."""
    ctx = OperationContext(
        args=list(names),
        rm=rm,
        rmd=rmd,
        container_number=container_number,
        quiet=quiet,
    )
    get_chain_manager(click_ctx).services.kill_service(ctx)


@services.command(name="ls")
@click.pass_context
@handle_errors
def ls(click_ctx):
    """List running services."""
    ctx = OperationContext()
    names = get_chain_manager(click_ctx).services.list_running_services(ctx)
    if not names:
        console.print("[yellow]No services running[/yellow]")
    for name in names:
        ctx.echo(name)
