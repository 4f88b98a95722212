# podunit/descriptor.py
import shutil
from datetime import datetime
from typing import Callable, Optional, Tuple

import structlog

from . import __version__
from .errors import (
    InvalidRestartPolicyError,
    MissingContainerNameError,
    MissingCreateCommandError,
    MissingPIDFileError,
    UnresolvedRuntimeRootError,
)
from .models import ContainerMetadata, GenerateOptions, RestartPolicy, UnitDescriptor, UnitType

logger = structlog.get_logger(__name__)

DEFAULT_EXECUTABLE = "/usr/bin/podman"

# systemd specifiers: %t is the runtime directory, %n the full unit name.
NEW_RUN_ROOT = "%t/containers"
NEW_CONTAINER_ID_FILE = "%t/%n.ctr-id"

# Lifecycle commands; {{{{field}}}} macros are resolved by the renderer.
FORKING_EXEC_START = "{{{{executable}}}} start {{{{container_ref}}}}"
FORKING_EXEC_STOP = "{{{{executable}}}} stop -t {{{{stop_timeout}}}} {{{{container_ref}}}}"
NEW_EXEC_START_PRE = "/bin/rm -f {{{{container_id_file}}}}"
NEW_EXEC_STOP = "{{{{executable}}}} stop --ignore --cidfile={{{{container_id_file}}}}"
NEW_EXEC_STOP_POST = "{{{{executable}}}} rm -f --ignore --cidfile={{{{container_id_file}}}}"


def resolve_executable(executable: Optional[str] = None) -> str:
    """Returns the podman executable to put into the unit.

    An explicit path is used verbatim. Otherwise podman is looked up on PATH,
    falling back to DEFAULT_EXECUTABLE.
    """
    if executable:
        return executable
    found = shutil.which("podman")
    if found:
        return found
    logger.warning(f"Could not obtain podman executable location, using default {DEFAULT_EXECUTABLE}")
    return DEFAULT_EXECUTABLE


def format_timestamp(moment: datetime) -> str:
    """Formats like `date`: 'Mon Jan  2 15:04:05 UTC 2006'.

    Naive datetimes are taken as local time.
    """
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return f"{moment:%a %b} {moment.day:2d} {moment:%H:%M:%S} {moment:%Z} {moment.year}"


def container_service_name(metadata: ContainerMetadata, options: GenerateOptions) -> Tuple[str, str]:
    """Returns the name-or-ID of the container and its service name."""
    if options.name and not metadata.name:
        raise MissingContainerNameError(f"cannot use --name on container {metadata.id!r}: no container name recorded")
    name_or_id = metadata.name if options.name else metadata.id
    return name_or_id, f"{options.container_prefix}{options.separator}{name_or_id}"


def validate_restart_policy(policy: str) -> RestartPolicy:
    try:
        return RestartPolicy(policy)
    except ValueError:
        valid = ", ".join(p.value for p in RestartPolicy)
        raise InvalidRestartPolicyError(f"{policy!r} is not a valid restart policy (valid: {valid})") from None


def build_descriptor(
    metadata: ContainerMetadata,
    options: GenerateOptions,
    executable: Optional[str] = None,
    now: Optional[Callable[[], datetime]] = None,
) -> UnitDescriptor:
    """
    Builds the unit descriptor of a container.

    With options.new the unit recreates the container on every start
    (Type=notify, ExecStart rewritten later from the create command);
    otherwise it starts and stops the existing container (Type=forking,
    tracked through conmon's PID file).

    Args:
        metadata: Recorded container metadata
        options: Generation options
        executable: Path of podman to use in the unit; looked up when None
        now: Clock for the header timestamp; defaults to local time

    Raises:
        InvalidRestartPolicyError: If options.restart_policy is not recognized
        MissingPIDFileError: If no conmon PID file is recorded (forking units)
        MissingCreateCommandError: If --new is requested without a recorded create command
        UnresolvedRuntimeRootError: If the run root is unknown (forking units)
        MissingContainerNameError: If options.name is set but the container has no name
    """
    restart_policy = validate_restart_policy(options.restart_policy)

    stop_timeout = metadata.stop_timeout
    if options.stop_timeout is not None:
        stop_timeout = options.stop_timeout

    if not options.new and not metadata.conmon_pid_file:
        raise MissingPIDFileError(
            "conmon PID file path is empty, try to recreate the container with --conmon-pidfile flag"
        )

    create_command = list(metadata.create_command or [])
    if options.new and not create_command:
        raise MissingCreateCommandError(
            f"cannot use --new on container {metadata.id!r}: no create command found: "
            "only works on containers created directly with podman but not via REST API"
        )

    if options.new:
        run_root = NEW_RUN_ROOT
    else:
        run_root = metadata.run_root
        if not run_root:
            raise UnresolvedRuntimeRootError("could not lookup container's runroot: got empty string")

    name_or_id, service_name = container_service_name(metadata, options)

    bound_services = []
    if metadata.pod is not None:
        bound_services.append(metadata.pod.service_name)

    timestamp = ""
    if not options.no_header:
        clock = now or (lambda: datetime.now().astimezone())
        timestamp = format_timestamp(clock())

    descriptor = UnitDescriptor(
        service_name=service_name,
        container_ref=name_or_id,
        unit_type=UnitType.FORKING,
        restart_policy=restart_policy,
        stop_timeout=stop_timeout,
        executable=resolve_executable(executable),
        run_root=run_root,
        exec_start=FORKING_EXEC_START,
        exec_stop=FORKING_EXEC_STOP,
        exec_stop_post=FORKING_EXEC_STOP,
        pid_file=metadata.conmon_pid_file,
        bound_services=sorted(set(bound_services)),
        create_command=create_command,
        container_env=list(metadata.env),
        timestamp=timestamp,
        generate_no_header=options.no_header,
        generator_version=__version__,
        pod=metadata.pod,
    )

    if options.new:
        descriptor.unit_type = UnitType.NOTIFY
        descriptor.notify_access = "all"
        descriptor.pid_file = ""
        descriptor.container_id_file = NEW_CONTAINER_ID_FILE
        descriptor.exec_start_pre = NEW_EXEC_START_PRE
        descriptor.exec_stop = NEW_EXEC_STOP
        descriptor.exec_stop_post = NEW_EXEC_STOP_POST

    logger.debug(f"Built descriptor for {service_name} (type={descriptor.unit_type.value})")
    return descriptor
