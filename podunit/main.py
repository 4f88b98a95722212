# podunit/main.py
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from podunit import __version__
from podunit.config import get_settings
from podunit.errors import MetadataError, UnitGenerationError
from podunit.generate import container_unit, write_unit_file
from podunit.logging_setup import configure_logging
from podunit.models import GenerateOptions, load_container_metadata

app = typer.Typer(help="Generate systemd units for Podman containers.")


def version_callback(value: bool):
    if value:
        typer.echo(f"podunit version: {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[bool, typer.Option("--version", "-v", callback=version_callback, is_eager=True, help="Show the application's version and exit.")] = False,
):
    """
    Main entry point for podunit.
    """
    pass


@app.command()
def generate(
    metadata_file: Annotated[Path, typer.Argument(help="YAML or JSON file with the container metadata.")],
    name: Annotated[bool, typer.Option("--name", help="Use the container name instead of the ID.", rich_help_panel="Naming")] = False,
    container_prefix: Annotated[Optional[str], typer.Option("--container-prefix", help="Prefix of the service name.", rich_help_panel="Naming")] = None,
    separator: Annotated[Optional[str], typer.Option("--separator", help="Separator between prefix and name.", rich_help_panel="Naming")] = None,
    new: Annotated[bool, typer.Option("--new", help="Create a new container on every start instead of starting the existing one.", rich_help_panel="Unit")] = False,
    restart_policy: Annotated[Optional[str], typer.Option("--restart-policy", help="Restart policy: no, on-failure or always.", rich_help_panel="Unit")] = None,
    stop_timeout: Annotated[Optional[int], typer.Option("--stop-timeout", "-t", min=0, help="Override the container's stop timeout (seconds).", rich_help_panel="Unit")] = None,
    no_header: Annotated[bool, typer.Option("--no-header", help="Skip the header with version and timestamp.", rich_help_panel="Unit")] = False,
    executable: Annotated[Optional[str], typer.Option("--executable", help="Path of podman to use in the unit.", rich_help_panel="Unit")] = None,
    files: Annotated[bool, typer.Option("--files", "-f", help="Write the unit to <output-dir>/<service>.service instead of stdout.", rich_help_panel="Output")] = False,
    output_dir: Annotated[Path, typer.Option("--output-dir", help="Directory for --files.", rich_help_panel="Output")] = Path("."),
):
    """
    Generates a systemd unit for a container from its recorded metadata.
    """
    settings = get_settings()
    configure_logging(settings.log_level, json_logs=settings.log_json)

    options = GenerateOptions(
        name=name,
        container_prefix=container_prefix if container_prefix is not None else settings.container_prefix,
        separator=separator if separator is not None else settings.separator,
        restart_policy=restart_policy if restart_policy is not None else settings.restart_policy,
        stop_timeout=stop_timeout,
        new=new,
        no_header=no_header,
    )

    try:
        metadata = load_container_metadata(metadata_file)
        service_name, content = container_unit(metadata, options, executable=executable or settings.executable)
    except (MetadataError, UnitGenerationError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if files:
        unit_path = write_unit_file(service_name, content, output_dir)
        typer.echo(str(unit_path))
    else:
        typer.echo(content, nl=False)


if __name__ == "__main__":
    app()
