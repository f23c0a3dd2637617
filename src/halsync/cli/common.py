"""
Helpers shared by the hal commands: client construction, component
targeting and error exits.
"""

from pathlib import Path
from typing import NoReturn

import typer
from pydantic import ValidationError

from halsync.cli.errors import ExitCode, console, print_error, print_hal_error
from halsync.core.cluster import KubectlClient
from halsync.core.config import (
    HalConfig,
    load_config,
    project_config_path,
    user_config_path,
)
from halsync.core.errors import HalError


def is_debug(ctx: typer.Context) -> bool:
    return bool(ctx.obj.get("debug", False)) if ctx.obj else False


def build_client(ctx: typer.Context) -> tuple[KubectlClient, HalConfig]:
    """
    Load configuration and build the cluster client.

    The global ``--namespace`` option wins over every config layer.

    Raises:
        typer.Exit: With USER_ERROR if the merged configuration is invalid
    """
    try:
        config = load_config()
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        )
        print_error(
            "Invalid configuration",
            reason=problems,
            solution=f"Fix {project_config_path()} or {user_config_path()}",
        )
        raise typer.Exit(ExitCode.USER_ERROR)

    cluster = config.cluster
    namespace = ctx.obj.get("namespace") if ctx.obj else None
    if namespace:
        cluster = cluster.model_copy(update={"namespace": namespace})
    return KubectlClient(cluster), config


def resolve_targets(components: str | None, cwd: Path | None = None) -> list[Path]:
    """
    Turn the ``-c`` option into component directories.

    Without the option the current directory is the only target.

    Raises:
        typer.Exit: With USER_ERROR if a directory doesn't exist
    """
    base = cwd or Path.cwd()
    if not components:
        return [base]

    targets = []
    for raw in components.split(","):
        raw = raw.strip()
        if not raw:
            continue
        path = base / raw
        if not path.is_dir():
            print_error(
                f"Component directory not found: {raw}",
                reason=f"Looked in {base}",
                solution="Pass directories relative to the current one: -c backend,frontend",
            )
            raise typer.Exit(ExitCode.USER_ERROR)
        targets.append(path)
    return targets


def component_name(target: Path) -> str:
    return target.resolve().name


def abort(error: HalError, debug: bool = False) -> NoReturn:
    """Print a core error and exit with GENERAL_ERROR."""
    print_hal_error(error)
    if debug:
        console.print_exception()
    raise typer.Exit(ExitCode.GENERAL_ERROR)


def interrupted() -> NoReturn:
    console.print("\n[yellow]Interrupted[/yellow]")
    raise typer.Exit(ExitCode.SIGINT)
