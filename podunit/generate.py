# podunit/generate.py
import dataclasses
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Tuple

import structlog

from .command_rewriter import rewrite_create_command
from .descriptor import build_descriptor
from .models import ContainerMetadata, GenerateOptions
from .renderer import render_unit

logger = structlog.get_logger(__name__)


def container_unit(
    metadata: ContainerMetadata,
    options: GenerateOptions,
    executable: Optional[str] = None,
    now: Optional[Callable[[], datetime]] = None,
) -> Tuple[str, str]:
    """
    Generates the systemd unit of a container.

    Returns:
        Tuple of (service name, unit text)

    Raises:
        UnitGenerationError: Any of its subclasses; no unit text is produced
    """
    descriptor = build_descriptor(metadata, options, executable=executable, now=now)

    if options.new:
        rewritten = rewrite_create_command(descriptor)
        descriptor = dataclasses.replace(
            descriptor,
            exec_start=rewritten.exec_start,
            extra_envs=rewritten.extra_envs,
        )

    content = render_unit(descriptor)
    logger.info(f"Generated unit {descriptor.service_name}.service")
    return descriptor.service_name, content


def write_unit_file(service_name: str, content: str, output_dir: Path) -> Path:
    """Writes <service_name>.service into output_dir and returns its path."""
    output_dir = Path(output_dir).expanduser()
    output_dir.mkdir(parents=True, exist_ok=True)
    unit_path = output_dir / f"{service_name}.service"
    with open(unit_path, "w", encoding="utf-8") as f:
        f.write(content)
    logger.info(f"Wrote unit file {unit_path}")
    return unit_path
