"""
hal CLI - Capability commands.

Inspect the capabilities registered in the cluster.
"""

import typer
from rich.console import Console
from rich.table import Table

from halsync.cli.common import abort, build_client, is_debug
from halsync.cli.errors import ExitCode, print_error
from halsync.core.capabilities import match as match_capabilities
from halsync.core.cluster import Capability, CapabilitySpec, NameValuePair
from halsync.core.errors import HalError

app = typer.Typer(
    name="capability",
    help="Inspect capabilities",
    no_args_is_help=True,
)

console = Console()


def _capability_table(title: str, capabilities: list[Capability]) -> Table:
    table = Table(title=title)
    table.add_column("Name", style="cyan")
    table.add_column("Category")
    table.add_column("Type")
    table.add_column("Version")
    table.add_column("Parameters", style="dim")
    for capability in capabilities:
        spec = capability.spec
        parameters = ", ".join(f"{p.name}={p.value}" for p in spec.parameters)
        table.add_row(capability.name, spec.category, spec.type, spec.version, parameters)
    return table


def parse_parameters(raw: list[str]) -> list[NameValuePair]:
    """
    Parse ``name=value`` pairs.

    Raises:
        ValueError: If a pair has no ``=`` or an empty name
    """
    pairs = []
    for item in raw:
        name, sep, value = item.partition("=")
        if not sep or not name.strip():
            raise ValueError(item)
        pairs.append(NameValuePair(name=name.strip(), value=value))
    return pairs


@app.command(name="list")
def list_capabilities(ctx: typer.Context) -> None:
    """
    List capabilities available in the namespace.

    Examples:
        hal capability list
        hal -n staging capability list
    """
    client, _ = build_client(ctx)
    try:
        capabilities = client.list_capabilities()
    except HalError as e:
        abort(e, is_debug(ctx))

    if not capabilities:
        console.print(f"[dim]No capabilities in namespace {client.namespace}[/dim]")
        return
    console.print(_capability_table(f"Capabilities in {client.namespace}", capabilities))


@app.command(name="match")
def match(
    ctx: typer.Context,
    category: str = typer.Option(..., "--category", help="Capability category"),
    type_: str = typer.Option(..., "--type", help="Capability type"),
    version: str = typer.Option("", "--version", help="Capability version"),
    parameters: list[str] = typer.Option(
        [],
        "--parameter",
        "-p",
        help="Required parameter as name=value (repeatable)",
    ),
) -> None:
    """
    Show the capabilities satisfying a requirement.

    Examples:
        hal capability match --category database --type postgres --version 10
        hal capability match --category database --type postgres -p DB_NAME=orders
    """
    try:
        required_parameters = parse_parameters(parameters)
    except ValueError as e:
        print_error(
            f"Invalid parameter: {e}",
            solution="Use name=value, e.g. -p DB_NAME=orders",
        )
        raise typer.Exit(ExitCode.USER_ERROR)

    required = CapabilitySpec(
        category=category,
        type=type_,
        version=version,
        parameters=required_parameters,
    )

    client, _ = build_client(ctx)
    try:
        matches = match_capabilities(required, client.list_capabilities())
    except HalError as e:
        abort(e, is_debug(ctx))

    if not matches:
        console.print(f"[yellow]No capability matches {required.display()}[/yellow]")
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    console.print(_capability_table(f"Capabilities matching {required.display()}", matches))
