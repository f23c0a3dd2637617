"""
hal CLI - Component commands.

Push local component directories to the cluster, switch their deployment
mode, bind their capability requirements, show their logs and wait for
their readiness.
"""

from collections.abc import Sequence

import typer
from rich.console import Console
from rich.table import Table

from halsync.cli.common import (
    abort,
    build_client,
    component_name,
    interrupted,
    is_debug,
    resolve_targets,
)
from halsync.cli.errors import ExitCode, print_error, print_invalid_option_error
from halsync.core.capabilities import bind_requirements, first_match
from halsync.core.cluster import (
    Capability,
    ComponentPhase,
    DeploymentMode,
    RequiredCapability,
)
from halsync.core.errors import HalError
from halsync.core.push import (
    PushOrchestrator,
    ReadinessWatcher,
    RemoteExecutor,
    switch_mode,
)

app = typer.Typer(
    name="component",
    help="Push and manage components",
    no_args_is_help=True,
)

console = Console()

COMPONENTS_HELP = "Comma-separated component directories (default: current directory)"


def _progress(message: str) -> None:
    console.print(f"[dim]→[/dim] {message}")


@app.command()
def push(
    ctx: typer.Context,
    components: str | None = typer.Option(
        None,
        "--components",
        "-c",
        help=COMPONENTS_HELP,
    ),
    binary: bool = typer.Option(
        False,
        "--binary",
        "-b",
        help="Push the packaged artifact instead of the sources",
    ),
) -> None:
    """
    Push components to the cluster.

    Components that don't exist yet are created from their descriptor.
    Nothing is uploaded when the payload didn't change since the last push.

    Examples:
        hal component push                    # Push the current directory
        hal component push -c backend,front   # Push two components
        hal component push --binary           # Push the packaged jar
    """
    debug = is_debug(ctx)
    targets = resolve_targets(components)
    client, config = build_client(ctx)

    watcher = ReadinessWatcher(client, config.watch.timeout_seconds)
    executor = RemoteExecutor(client, progress=_progress)
    orchestrator = PushOrchestrator(client, config.push, watcher, executor, progress=_progress)

    for target in targets:
        name = component_name(target)
        console.print(f"[bold]Pushing {name}[/bold]")
        try:
            result = orchestrator.push(target, name=name, binary=binary)
        except HalError as e:
            abort(e, debug)
        except KeyboardInterrupt:
            interrupted()

        if result.pushed:
            console.print(f"[green]✓[/green] {result.summary()}")
        else:
            console.print(f"[dim]{result.message}[/dim]")


@app.command()
def mode(
    ctx: typer.Context,
    mode_name: str = typer.Option(
        ...,
        "--mode",
        "-m",
        help="Deployment mode: dev or build",
    ),
    components: str | None = typer.Option(
        None,
        "--components",
        "-c",
        help=COMPONENTS_HELP,
    ),
) -> None:
    """
    Switch the deployment mode of components.

    Examples:
        hal component mode -m build
        hal component switch -m dev -c backend
    """
    try:
        deployment_mode = DeploymentMode(mode_name)
    except ValueError:
        print_invalid_option_error(mode_name, [m.value for m in DeploymentMode])
        raise typer.Exit(ExitCode.USER_ERROR)

    debug = is_debug(ctx)
    targets = resolve_targets(components)
    client, _ = build_client(ctx)

    for target in targets:
        name = component_name(target)
        try:
            switch_mode(client, name, deployment_mode)
        except HalError as e:
            abort(e, debug)
        console.print(f"[green]✓[/green] {name} switched to {deployment_mode.value} mode")


app.command(name="switch", hidden=True)(mode)


def _prompt_select(requirement: RequiredCapability, matches: Sequence[Capability]) -> Capability:
    """Ask which of several matching capabilities to bind to."""
    table = Table(title=f"Capabilities matching '{requirement.name}'")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Name")
    table.add_column("Spec", style="dim")
    for index, capability in enumerate(matches, start=1):
        table.add_row(str(index), capability.name, capability.spec.display())
    console.print(table)

    while True:
        choice = typer.prompt("Select a capability", type=int, default=1)
        if 1 <= choice <= len(matches):
            return matches[choice - 1]
        console.print(f"[red]Pick a number between 1 and {len(matches)}[/red]")


@app.command()
def bind(
    ctx: typer.Context,
    components: str | None = typer.Option(
        None,
        "--components",
        "-c",
        help=COMPONENTS_HELP,
    ),
    rebind: bool = typer.Option(
        False,
        "--rebind",
        help="Also reconsider requirements that are already bound",
    ),
    first: bool = typer.Option(
        False,
        "--first",
        help="Pick the first matching capability instead of asking",
    ),
) -> None:
    """
    Bind required capabilities of components.

    A requirement with a single matching capability is bound automatically.

    Examples:
        hal component bind
        hal component bind --rebind --first -c backend
    """
    debug = is_debug(ctx)
    targets = resolve_targets(components)
    client, _ = build_client(ctx)
    select = first_match if first else _prompt_select

    for target in targets:
        name = component_name(target)
        try:
            component = client.get_component(name)
            requires = component.spec.capabilities.requires
            if not requires:
                console.print(f"[dim]{name} doesn't require any capability[/dim]")
                continue

            changed = bind_requirements(component, client.list_capabilities(), select, rebind)
            if not changed:
                console.print(f"[dim]All capabilities of {name} are already bound[/dim]")
                continue

            client.patch_component(
                name,
                {
                    "spec": {
                        "capabilities": {
                            "requires": [
                                r.model_dump(by_alias=True, exclude_none=True) for r in requires
                            ]
                        }
                    }
                },
            )
        except HalError as e:
            abort(e, debug)

        for requirement in requires:
            if requirement.name in changed:
                console.print(
                    f"[green]✓[/green] {name}: {requirement.name} bound to {requirement.bound_to}"
                )


@app.command()
def log(
    ctx: typer.Context,
    components: str | None = typer.Option(
        None,
        "--components",
        "-c",
        help=COMPONENTS_HELP,
    ),
    follow: bool = typer.Option(
        False,
        "--follow",
        "-f",
        help="Keep streaming new log lines",
    ),
) -> None:
    """
    Show the logs of components' pods.

    Examples:
        hal component log
        hal component log -f -c backend
    """
    debug = is_debug(ctx)
    targets = resolve_targets(components)
    client, _ = build_client(ctx)

    for target in targets:
        name = component_name(target)
        try:
            pod = client.get_component(name).pod_name
            if not pod:
                print_error(
                    f"{name} has no pod yet",
                    reason="The cluster hasn't scheduled the component",
                    solution=f"hal component wait {name}",
                )
                raise typer.Exit(ExitCode.GENERAL_ERROR)

            process = client.logs(pod, follow=follow)
            if process.stdout is not None:
                for line in process.stdout:
                    typer.echo(line, nl=False)
            returncode = process.wait()
        except HalError as e:
            abort(e, debug)
        except KeyboardInterrupt:
            interrupted()

        if returncode != 0:
            print_error(
                f"Unable to read the logs of {name}",
                reason=f"kubectl logs exited with code {returncode}",
            )
            raise typer.Exit(ExitCode.GENERAL_ERROR)


@app.command()
def wait(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Component name"),
    phase: str = typer.Option(
        ComponentPhase.READY.value,
        "--phase",
        help="Phase to wait for",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        "-t",
        min=0.1,
        help="Seconds to wait (default: watch.timeout_seconds)",
    ),
) -> None:
    """
    Wait until a component reaches a phase.

    Examples:
        hal component wait backend
        hal component wait backend --phase Running --timeout 300
    """
    try:
        desired = ComponentPhase(phase)
    except ValueError:
        print_invalid_option_error(phase, [p.value for p in ComponentPhase])
        raise typer.Exit(ExitCode.USER_ERROR)

    debug = is_debug(ctx)
    client, config = build_client(ctx)
    watcher = ReadinessWatcher(client, config.watch.timeout_seconds)

    try:
        component = watcher.wait_for(name, desired, timeout)
    except HalError as e:
        abort(e, debug)
    except KeyboardInterrupt:
        interrupted()

    pod = f" (pod {component.pod_name})" if component.pod_name else ""
    console.print(f"[green]✓[/green] {name} is {desired.value}{pod}")
