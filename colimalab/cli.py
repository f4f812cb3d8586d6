"""Main CLI entry point for homelab provisioning."""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from colimalab.exceptions import ColimaLabError, ProvisioningError
from colimalab.logging_config import get_logger, setup_logging

app = typer.Typer(
    name="colimalab",
    help="Provision an NFS-backed Colima, k3d and Ollama homelab",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)

CONFIG_HELP = "Path to the config file (default: $COLIMALAB_CONFIG or colimalab.yml)"


def _print_error(e: ColimaLabError, label: str = "Error") -> None:
    console.print(f"[red]{label}:[/red] {e.message}")
    if e.details:
        console.print(f"\n{e.details}")


def _results_table(outputs: dict[str, str]) -> Table:
    table = Table(title="Provisioning Outputs")
    table.add_column("Output", style="cyan")
    table.add_column("Value", style="green")
    for key, value in outputs.items():
        table.add_row(key, value)
    return table


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: str | None = typer.Option(None, "--log-file", help="Path to log file"),
):
    """Global options for all commands."""
    log_path = Path(log_file) if log_file else None
    setup_logging(verbose=verbose, log_file=log_path)
    logger.debug("Logging initialized")


@app.command()
def version() -> None:
    """Show version information."""
    from colimalab import __version__

    typer.echo(f"ColimaLab version {__version__}")


@app.command()
def init(
    config_path: str | None = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config"),
) -> None:
    """
    Write a starter configuration file.

    The template contains every supported key with the values of the
    reference homelab. Edit it before running 'colimalab up'.
    """
    from colimalab.config import ConfigManager

    manager = ConfigManager(config_path)
    try:
        manager.write_template(force=force)
    except ColimaLabError as e:
        _print_error(e)
        raise typer.Exit(code=1)

    console.print(f"[green]✓[/green] Wrote config template to {manager.config_path}")


@app.command()
def plan(
    config_path: str | None = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
) -> None:
    """
    Show the provisioning steps in execution order.

    Nothing is executed; the config file is only read to validate it.
    """
    from colimalab.config import ConfigManager
    from colimalab.pipeline import build_pipeline

    try:
        config = ConfigManager(config_path).load()
        graph = build_pipeline(config)
        steps = graph.order()
    except ColimaLabError as e:
        _print_error(e)
        raise typer.Exit(code=1)

    table = Table(title="Provisioning Plan")
    table.add_column("#", style="dim")
    table.add_column("Step", style="cyan")
    table.add_column("Runs On", style="magenta")
    table.add_column("Depends On", style="yellow")
    table.add_column("Description")

    for index, step in enumerate(steps, start=1):
        depends = ", ".join(graph.dependencies(step.name)) or "-"
        table.add_row(str(index), step.name, step.runner.label, depends, step.description)

    console.print(table)


@app.command()
def up(
    config_path: str | None = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Print the commands that would run without executing them"
    ),
) -> None:
    """
    Provision the homelab.

    Exports the NFS share on the NAS, mounts it locally, reinstalls Colima
    with its Docker data-root on the share, creates the k3d cluster and
    pulls the Ollama model. Steps that find their end state already present
    skip their changes, except Colima, which is always reinstalled.

    Examples:
        # Provision everything
        colimalab up

        # Show the commands without running them
        colimalab up --dry-run
    """
    from colimalab.config import ConfigManager
    from colimalab.pipeline import build_pipeline
    from colimalab.runner import RecordedCall, RecordingRunner

    journal: list[RecordedCall] = []

    try:
        config = ConfigManager(config_path).load()

        if dry_run:
            local = RecordingRunner("local", journal)
            remote = RecordingRunner(f"{config.nas_user}@{config.nas_host}", journal)
            graph = build_pipeline(config, local, remote)
            console.print("[yellow]Mode: dry-run (no commands are executed)[/yellow]")
        else:
            graph = build_pipeline(config)

        console.print("\n[bold cyan]Provisioning homelab[/bold cyan]")
        console.print(f"NAS: {config.nas_user}@{config.nas_host}:{config.nfs_path}")
        console.print(f"Mount: {config.nfs_mount}")
        console.print(f"Steps: {' → '.join(s.name for s in graph.order())}\n")

        result = graph.run()

    except ProvisioningError as e:
        _print_error(e, "Provisioning failed")
        if e.completed:
            console.print(f"\nCompleted steps: {', '.join(e.completed)}")
        console.print("Nothing was rolled back; fix the problem and run 'colimalab up' again")
        raise typer.Exit(code=1)
    except ColimaLabError as e:
        _print_error(e)
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Provisioning interrupted by user[/yellow]")
        console.print("External state may be partially changed")
        raise typer.Exit(code=130)

    if dry_run:
        console.print("[bold]Commands:[/bold]")
        for call in journal:
            console.print(f"  {call}", markup=False, highlight=False, soft_wrap=True)
        console.print()

    for step in result.steps:
        mark = "[yellow]changed[/yellow]" if step.changed else "[green]ok[/green]"
        console.print(f"  {step.name}: {mark}")

    console.print()
    console.print(_results_table(result.exports()))
    console.print("\n[green]✓ Provisioning completed[/green]")


@app.command()
def status(
    config_path: str | None = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
) -> None:
    """
    Show which components are already in place.

    Runs only the read-only checks of each step.
    """
    from colimalab.config import ConfigManager
    from colimalab.pipeline import build_pipeline

    try:
        config = ConfigManager(config_path).load()
        graph = build_pipeline(config)
        probes = graph.probe_all()
    except ColimaLabError as e:
        _print_error(e)
        raise typer.Exit(code=1)

    table = Table(title="Homelab Status")
    table.add_column("Step", style="cyan")
    table.add_column("Runs On", style="magenta")
    table.add_column("State")

    for name, present in probes.items():
        state = "[green]✓ Present[/green]" if present else "[red]✗ Absent[/red]"
        table.add_row(name, graph.step(name).runner.label, state)

    console.print(table)

    present_count = sum(probes.values())
    console.print(f"\n[bold]Present:[/bold] {present_count}/{len(probes)}")


@app.command()
def down(
    config_path: str | None = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation prompt"),
) -> None:
    """
    Tear down the homelab in reverse order.

    Stops Ollama, deletes the k3d cluster, stops Colima and unmounts the
    share. The NFS export on the NAS and downloaded models are left alone.
    """
    from colimalab.config import ConfigManager
    from colimalab.pipeline import build_pipeline

    try:
        config = ConfigManager(config_path).load()
    except ColimaLabError as e:
        _print_error(e)
        raise typer.Exit(code=1)

    if not force:
        console.print(
            f"[yellow]Warning:[/yellow] About to delete k3d cluster '{config.cluster_name}', "
            f"stop Colima and unmount {config.nfs_mount}"
        )
        if not typer.confirm("Are you sure you want to continue?"):
            console.print("Operation cancelled")
            raise typer.Exit(code=0)

    try:
        done = build_pipeline(config).teardown()
    except ColimaLabError as e:
        _print_error(e, "Teardown failed")
        raise typer.Exit(code=1)

    console.print(f"[green]✓[/green] Tore down: {', '.join(done)}")


@app.command()
def config_get(
    key: str = typer.Argument(..., help="Configuration key to retrieve (e.g. colima-cpu)"),
    config_path: str | None = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
) -> None:
    """Retrieve a value from the configuration file."""
    from colimalab.config import ConfigManager

    try:
        value = ConfigManager(config_path).get_value(key)
    except ColimaLabError as e:
        _print_error(e)
        raise typer.Exit(code=1)

    console.print(f"[cyan]{key}[/cyan]:")
    if isinstance(value, list):
        for item in value:
            console.print(f"  - {item}")
    else:
        console.print(f"  {value}")


@app.command()
def config_set(
    key: str = typer.Argument(..., help="Configuration key to set (e.g. colima-cpu)"),
    value: str = typer.Argument(..., help="Configuration value to set"),
    value_type: str = typer.Option(
        "string", "--type", "-t", help="Value type: string, int, bool, or json"
    ),
    config_path: str | None = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
) -> None:
    """
    Set a value in the configuration file.

    The updated file is validated before it is written, and comments are
    preserved.

    Examples:
        config-set colima-cpu 6 --type int
        config-set ollama-model llama3:8b
        config-set cluster-ports '["8080:80@loadbalancer"]' --type json
    """
    import json

    from colimalab.config import ConfigManager

    parsed_value = value
    error = None
    if value_type == "int":
        try:
            parsed_value = int(value)
        except ValueError as e:
            error = f"Failed to parse value as int: {e}"
    elif value_type == "bool":
        if value.lower() in ["true", "1", "yes", "on"]:
            parsed_value = True
        elif value.lower() in ["false", "0", "no", "off"]:
            parsed_value = False
        else:
            error = f"Invalid boolean value: '{value}'"
    elif value_type == "json":
        try:
            parsed_value = json.loads(value)
        except json.JSONDecodeError as e:
            error = f"Failed to parse value as json: {e}"
    elif value_type != "string":
        error = f"Invalid type '{value_type}'. Must be one of: string, int, bool, json"

    if error:
        console.print(f"[red]Error:[/red] {error}")
        raise typer.Exit(code=1)

    try:
        ConfigManager(config_path).set_value(key, parsed_value)
    except ColimaLabError as e:
        _print_error(e)
        raise typer.Exit(code=1)

    console.print(f"[green]✓[/green] Successfully set '{key}' = {parsed_value}")


if __name__ == "__main__":
    app()
