"""
Chain commands for chainbox.

- chainbox chains new <name> --genesis <file> - Create a chain's containers
- chainbox chains start <name> - Start a created chain
- chainbox chains stop <name> [--rm] - Stop (and optionally remove) a chain
- chainbox chains rm <name> - Remove a stopped chain
- chainbox chains rename <old> <new> - Rename a chain and its definition
- chainbox chains inspect <name> [field...] - Show container attributes
- chainbox chains ls [prefix] [--running] - List existing chains
- chainbox chains known - List chain definitions
- chainbox chains logs <name> [-f] - Show chain logs
- chainbox chains update <name> - Re-pull the image and recreate the container
- chainbox chains graduate <name> - Write a pinned service definition
- chainbox chains cat <name> <file> - Print a file from the chain's data volume
- chainbox chains exec <name> -- <cmd> - Run a command in a running chain
"""

import click

from chainbox.commands.config_utils import load_settings
from chainbox.commands.constants import DEFAULT_CONTAINER_NUMBER, TAIL_ALL
from chainbox.commands.managers.chain import ChainManager, chain_directory
from chainbox.commands.operation import OperationContext
from chainbox.commands.utils import console, handle_errors


def get_chain_manager(click_ctx: click.Context) -> ChainManager:
    """Return the invocation's ChainManager, connecting to Docker on first use."""
    obj = click_ctx.ensure_object(dict)
    if "manager" not in obj:
        settings = obj.get("settings") or load_settings()
        obj["manager"] = ChainManager.from_settings(settings)
    return obj["manager"]


number_option = click.option(
    "--number",
    "-N",
    "container_number",
    type=int,
    default=DEFAULT_CONTAINER_NUMBER,
    show_default=True,
    help="Container number of the chain instance.",
)
quiet_option = click.option(
    "--quiet", "-q", is_flag=True, help="Only print errors and requested output."
)
skip_pull_option = click.option(
    "--skip-pull", is_flag=True, help="Do not pull the image before creating containers."
)


@click.group(name="chains")
def chains():
    """Create and manage chain containers."""
    pass


@chains.command(name="new")
@click.argument("name")
@click.option("--genesis", "genesis_file", help="Genesis file for the chain.")
@click.option(
    "--dir",
    "path",
    type=click.Path(exists=True, file_okay=False),
    help="Directory whose files are copied into the chain's data volume.",
)
@number_option
@skip_pull_option
@quiet_option
@click.pass_context
@handle_errors
def new(click_ctx, name, genesis_file, path, container_number, skip_pull, quiet):
    """
    Create a chain's data and chain containers without starting them.

    Examples:
        chainbox chains new devnet --genesis ./genesis.json
        chainbox chains new devnet -N 2 --dir ./chain-config
    """
    ctx = OperationContext(
        name=name,
        genesis_file=genesis_file or "",
        path=path or "",
        container_number=container_number,
        skip_pull=skip_pull,
        quiet=quiet,
    )
    get_chain_manager(click_ctx).new_chain(ctx)


@chains.command(name="start")
@click.argument("name")
@number_option
@quiet_option
@click.pass_context
@handle_errors
def start(click_ctx, name, container_number, quiet):
    """Start a created chain. Its dependency services must already be running."""
    ctx = OperationContext(name=name, container_number=container_number, quiet=quiet)
    get_chain_manager(click_ctx).start_chain(ctx)


@chains.command(name="stop")
@click.argument("name")
@click.option("--rm", is_flag=True, help="Remove the chain's containers after stopping.")
@click.option(
    "--rm-data", "rmd", is_flag=True, help="Remove the data container as well."
)
@click.option(
    "--rm-deps",
    is_flag=True,
    help="Also stop the chain's dependency services (removing them with --rm).",
)
@number_option
@quiet_option
@click.pass_context
@handle_errors
def stop(click_ctx, name, rm, rmd, rm_deps, container_number, quiet):
    """Stop a chain."""
    ctx = OperationContext(
        name=name,
        rm=rm,
        rmd=rmd,
        rm_deps=rm_deps,
        container_number=container_number,
        quiet=quiet,
    )
    get_chain_manager(click_ctx).kill_chain(ctx)


@chains.command(name="rm")
@click.argument("name")
@click.option("--force", "-f", is_flag=True, help="Stop the chain first if it is running.")
@click.option(
    "--rm-data", "rmd", is_flag=True, help="Remove the data container as well."
)
@click.option(
    "--rm-deps", is_flag=True, help="Also stop and remove the chain's dependency services."
)
@number_option
@quiet_option
@click.pass_context
@handle_errors
def rm(click_ctx, name, force, rmd, rm_deps, container_number, quiet):
    """Remove a stopped chain's containers."""
    ctx = OperationContext(
        name=name,
        rm=True,
        rmd=rmd,
        rm_deps=rm_deps,
        container_number=container_number,
        quiet=quiet,
    )
    manager = get_chain_manager(click_ctx)
    if force:
        manager.kill_chain(ctx)
    else:
        manager.rm_chain(ctx)


@chains.command(name="rename")
@click.argument("name")
@click.argument("new_name")
@number_option
@quiet_option
@click.pass_context
@handle_errors
def rename(click_ctx, name, new_name, container_number, quiet):
    """Rename a chain's containers and its definition."""
    ctx = OperationContext(
        name=name, new_name=new_name, container_number=container_number, quiet=quiet
    )
    get_chain_manager(click_ctx).rename_chain(ctx)


@chains.command(name="inspect")
@click.argument("name")
@click.argument("fields", nargs=-1)
@number_option
@click.pass_context
@handle_errors
def inspect(click_ctx, name, fields, container_number):
    """
    Show attributes of a chain's container.

    FIELDS are name, id, image, status, running, mounts, config, env, labels,
    or a dotted path such as NetworkSettings.IPAddress. Without FIELDS the whole
    inspect document is printed.
    """
    ctx = OperationContext(
        name=name, args=list(fields), container_number=container_number
    )
    get_chain_manager(click_ctx).inspect_chain(ctx)


@chains.command(name="ls")
@click.argument("prefix", required=False, default="")
@click.option("--running", is_flag=True, help="Only list running chains.")
@click.pass_context
@handle_errors
def ls(click_ctx, prefix, running):
    """List chains that have containers."""
    ctx = OperationContext(name=prefix)
    manager = get_chain_manager(click_ctx)
    names = manager.list_running(ctx) if running else manager.list_existing(ctx)
    if not names:
        console.print("[yellow]No chains found[/yellow]")


@chains.command(name="known")
@click.pass_context
@handle_errors
def known(click_ctx):
    """List chain definitions."""
    names = get_chain_manager(click_ctx).list_known(OperationContext())
    if not names:
        console.print("[yellow]No chain definitions found[/yellow]")


@chains.command(name="logs")
@click.argument("name")
@click.option("--follow", "-f", is_flag=True, help="Follow log output.")
@click.option(
    "--tail", default=TAIL_ALL, show_default=True, help="Number of lines to show."
)
@number_option
@click.pass_context
@handle_errors
def logs(click_ctx, name, follow, tail, container_number):
    """Show a chain's logs."""
    ctx = OperationContext(
        name=name, follow=follow, tail=tail, container_number=container_number
    )
    try:
        get_chain_manager(click_ctx).logs_chain(ctx)
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped following logs[/yellow]")


@chains.command(name="update")
@click.argument("name")
@click.option(
    "--dir",
    "path",
    type=click.Path(exists=True, file_okay=False),
    help="Directory copied again into a chain that keeps its files in its own container.",
)
@number_option
@skip_pull_option
@quiet_option
@click.pass_context
@handle_errors
def update(click_ctx, name, path, container_number, skip_pull, quiet):
    """Re-pull a chain's image and recreate its container, keeping its data."""
    ctx = OperationContext(
        name=name,
        path=path or "",
        container_number=container_number,
        skip_pull=skip_pull,
        quiet=quiet,
    )
    get_chain_manager(click_ctx).update_chain(ctx)


@chains.command(name="graduate")
@click.argument("name")
@quiet_option
@click.pass_context
@handle_errors
def graduate(click_ctx, name, quiet):
    """Write a version-pinned service definition for a chain."""
    ctx = OperationContext(name=name, quiet=quiet)
    get_chain_manager(click_ctx).graduate_chain(ctx)


@chains.command(name="cat")
@click.argument("name")
@click.argument("filename")
@number_option
@click.pass_context
@handle_errors
def cat(click_ctx, name, filename, container_number):
    """
    Print a file from a chain's directory in its data volume.

    Examples:
        chainbox chains cat devnet genesis.json
    """
    ctx = OperationContext(
        name=name,
        args=["cat", f"{chain_directory(name)}/{filename}"],
        container_number=container_number,
    )
    get_chain_manager(click_ctx).exec_in_data(ctx)


@chains.command(name="exec", context_settings={"ignore_unknown_options": True})
@click.argument("name")
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@number_option
@click.pass_context
@handle_errors
def exec_(click_ctx, name, command, container_number):
    """
    Run a command inside a running chain's container.

    Examples:
        chainbox chains exec devnet -- ls /home/chainbox
    """
    ctx = OperationContext(
        name=name, args=list(command), container_number=container_number
    )
    get_chain_manager(click_ctx).exec_chain(ctx)
