# podunit/command_rewriter.py
"""
Rebuilds a container's create command for units generated with --new.

The unit recreates the container on every start, so the recorded
`podman run`/`podman create` command is turned into a `podman run` that:
- writes the container ID to a unit-scoped ID file,
- leaves cgroup handling of conmon to systemd,
- removes the container when it exits,
- detaches and notifies systemd through conmon,
- replaces a leftover container of the same name.

Note that a container may have been created by a script or an API client, in
which case the recorded command is not a faithful podman invocation. The
rewrite is best effort; generated units must still be reviewed.
"""

from typing import List, NamedTuple, Optional, Sequence, Tuple

import structlog

from .errors import InvalidCreateCommandError
from .escape import escape_systemd_arg, escape_systemd_arguments
from .flag_parser import parse_flags
from .models import UnitDescriptor

logger = structlog.get_logger(__name__)

SUBCOMMANDS = ("run", "create")

# Macros resolved by the renderer's second pass. They contain no characters
# the escaper would touch.
CONTAINER_ID_FILE_MACRO = "{{{{container_id_file}}}}"
POD_ID_FILE_MACRO = "{{{{pod.pod_id_file}}}}"

START_FLAGS = [
    f"--cidfile={CONTAINER_ID_FILE_MACRO}",
    "--cgroups=no-conmon",
    "--rm",
]

# Flags owned by START_FLAGS and dropped from the recorded command.
_COMMON_VALUED_FLAGS = ("--cgroups", "--cidfile", "--pidfile", "--conmon-pidfile")
_COMMON_ASSIGNED_PREFIXES = ("--rm=", "--cgroups=", "--cidfile=", "--pidfile=", "--conmon-pidfile=")

# Implied by the --pod-id-file flag of pod members.
_POD_VALUED_FLAGS = ("--pod", "--pod-id-file")
_POD_ASSIGNED_PREFIXES = ("--pod=", "--pod-id-file=")


class RewrittenCommand(NamedTuple):
    exec_start: str
    extra_envs: List[str]


def find_subcommand_index(command: Sequence[str]) -> int:
    """Returns the index of the first `run` or `create` token."""
    for index, token in enumerate(command):
        if token in SUBCOMMANDS:
            return index
    raise InvalidCreateCommandError(f"container's create command is too short or invalid: {list(command)}")


def _filter_flags(
    command: List[str],
    positional_count: int,
    valued_flags: Tuple[str, ...],
    assigned_prefixes: Tuple[str, ...],
    bare_flags: Tuple[str, ...] = (),
) -> List[str]:
    """Drops the given flags (and the values of space-separated ones) from the flag region."""
    end = len(command) - positional_count
    processed: List[str] = []
    index = 0
    while index < end:
        token = command[index]
        if token in bare_flags or token.startswith(assigned_prefixes):
            index += 1
            continue
        if token in valued_flags:
            index += 2
            continue
        processed.append(token)
        index += 1
    processed.extend(command[end:])
    return processed


def filter_common_container_flags(command: List[str], positional_count: int) -> List[str]:
    return _filter_flags(
        command, positional_count, _COMMON_VALUED_FLAGS, _COMMON_ASSIGNED_PREFIXES, bare_flags=("--rm",)
    )


def filter_pod_flags(command: List[str], positional_count: int) -> List[str]:
    return _filter_flags(command, positional_count, _POD_VALUED_FLAGS, _POD_ASSIGNED_PREFIXES)


def remove_flag_assignments(command: List[str], assignments: List[Tuple[int, int]]) -> List[str]:
    """Removes explicit `flag=value` assignments found by the flag parser.

    Long flags and shorthand groups that start with the flag lose the whole
    token. In a group like `-id=false` only the assignment is cut, keeping `-i`.
    """
    stripped: List[Optional[str]] = list(command)
    for position, offset in assignments:
        token = stripped[position]
        stripped[position] = token[:offset] if offset > 1 else None
    return [token for token in stripped if token is not None]


def pinned_environment(env_refs: List[str], container_env: List[str]) -> List[str]:
    """Resolves `--env NAME` references against the container's environment.

    `podman run --env NAME` reads NAME from the caller's environment, which
    systemd does not provide, so the value recorded in the container is pinned
    on the unit. Names missing from the container environment are skipped; the
    container may get them another way.
    """
    pinned: List[str] = []
    for ref in env_refs:
        if "=" in ref:
            continue
        found = False
        for entry in container_env:
            key = entry.split("=", 1)[0]
            if key == ref:
                pinned.append(escape_systemd_arg(entry))
                found = True
        if not found:
            logger.debug(f"Environment reference '{ref}' not found in container environment, skipping")
    return pinned


def rewrite_create_command(descriptor: UnitDescriptor) -> RewrittenCommand:
    """Builds the ExecStart command line of a --new unit.

    Args:
        descriptor: Descriptor carrying the recorded create command, the
            executable, the container environment and the pod binding

    Returns:
        RewrittenCommand with the escaped command line and the escaped
        KEY=VALUE entries to pin as Environment=

    Raises:
        InvalidCreateCommandError: If there is no run/create token or a
            recognized flag is malformed
    """
    command = list(descriptor.create_command)
    index = find_subcommand_index(command)

    start_command = [descriptor.executable]
    if index > 1:
        # root flags such as --root or --log-level
        start_command.extend(command[1:index])
    start_command.append("run")
    start_command.extend(START_FLAGS)

    remaining = command[index + 1:]
    parsed = parse_flags(remaining)
    positional_count = parsed.positional_count

    add_detach = not parsed.get_bool("detach")
    add_replace = parsed.is_set("name") and not parsed.get_bool("replace")

    # Explicit false values would override the flags appended below.
    overridden: List[Tuple[int, int]] = []
    if add_detach:
        overridden.extend(parsed.assignments.get("detach", []))
    if add_replace:
        overridden.extend(parsed.assignments.get("replace", []))
    remaining = remove_flag_assignments(remaining, overridden)

    remaining = filter_common_container_flags(remaining, positional_count)

    if descriptor.pod is not None:
        start_command.extend(["--pod-id-file", POD_ID_FILE_MACRO])
        remaining = filter_pod_flags(remaining, positional_count)

    if not parsed.is_set("sdnotify"):
        start_command.append("--sdnotify=conmon")

    if add_detach:
        # Attached `podman run` would keep ExecStart from ever returning.
        start_command.append("-d")

    if add_replace:
        # Lets the unit start again after a crash left the named container behind.
        start_command.append("--replace")

    extra_envs = pinned_environment(parsed.get_string_array("env"), descriptor.container_env)

    start_command.extend(remaining)
    exec_start = " ".join(escape_systemd_arguments(start_command))
    logger.debug(f"Rewrote create command for {descriptor.service_name}: {exec_start}")
    return RewrittenCommand(exec_start=exec_start, extra_envs=extra_envs)
