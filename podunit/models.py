# podunit/models.py
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import MetadataError

logger = structlog.get_logger(__name__)

# systemd waits this long on top of the container's own stop timeout.
MIN_TIMEOUT_STOP_SEC = 10

# Set on the unit so the container knows which service manages it.
ENV_VARIABLE = "PODMAN_SYSTEMD_UNIT"


class UnitType(str, Enum):
    FORKING = "forking"
    NOTIFY = "notify"


class RestartPolicy(str, Enum):
    NO = "no"
    ON_FAILURE = "on-failure"
    ALWAYS = "always"


# --- Input records ---

class PodInfo(BaseModel):
    """Pod membership of a container, owned by the pod generator."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    service_name: str = Field(..., min_length=1, description="Unit name of the pod, without '.service'")
    pod_id_file: str = Field(..., min_length=1, description="ID-file placeholder of the pod, e.g. %t/pod-web.pod-id")


class ContainerMetadata(BaseModel):
    """What the container engine recorded about a container."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    name: str = ""
    stop_timeout: int = Field(10, ge=0)
    conmon_pid_file: str = ""
    run_root: str = ""
    create_command: Optional[List[str]] = None
    env: List[str] = Field(default_factory=list, description="KEY=VALUE entries of the container process")
    pod: Optional[PodInfo] = None


class GenerateOptions(BaseModel):
    """Options of a single generation request."""

    name: bool = False
    container_prefix: str = "container"
    separator: str = "-"
    restart_policy: str = RestartPolicy.ON_FAILURE.value
    stop_timeout: Optional[int] = Field(None, ge=0)
    new: bool = False
    no_header: bool = False


# --- Descriptor ---

@dataclass
class UnitDescriptor:
    """Everything the renderer needs to produce one unit.

    Exec* fields may reference other fields as {{{{ field }}}} macros; the
    renderer resolves them in its second pass.
    """

    service_name: str
    container_ref: str
    unit_type: UnitType
    restart_policy: RestartPolicy
    stop_timeout: int
    executable: str
    run_root: str
    exec_start: str
    exec_stop: str = ""
    exec_stop_post: str = ""
    exec_start_pre: str = ""
    pid_file: str = ""
    container_id_file: str = ""
    notify_access: str = ""
    bound_services: List[str] = field(default_factory=list)
    create_command: List[str] = field(default_factory=list)
    container_env: List[str] = field(default_factory=list)
    extra_envs: List[str] = field(default_factory=list)
    env_variable: str = ENV_VARIABLE
    timestamp: str = ""
    generate_no_header: bool = False
    generator_version: str = ""
    pod: Optional[PodInfo] = None

    @property
    def timeout_stop_sec(self) -> int:
        return MIN_TIMEOUT_STOP_SEC + self.stop_timeout


# --- Loading ---

def load_container_metadata(file_path: Path) -> ContainerMetadata:
    """Reads container metadata from a YAML or JSON file."""
    file_path = Path(file_path)
    if not file_path.is_file():
        raise MetadataError(f"Metadata file not found: {file_path}")

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise MetadataError(f"Error parsing metadata file {file_path}: {e}") from e

    if not isinstance(raw, dict):
        raise MetadataError(f"Metadata file {file_path} must contain a mapping, got {type(raw).__name__}")

    try:
        metadata = ContainerMetadata.model_validate(raw)
    except ValidationError as e:
        raise MetadataError(f"Invalid container metadata in {file_path}: {e}") from e

    logger.debug(f"Loaded metadata for container {metadata.id} from {file_path}")
    return metadata
