# tests/test_command_rewriter.py
from typing import List, Optional

import pytest

from podunit.command_rewriter import (
    filter_common_container_flags,
    filter_pod_flags,
    find_subcommand_index,
    remove_flag_assignments,
    rewrite_create_command,
)
from podunit.descriptor import build_descriptor
from podunit.errors import InvalidCreateCommandError
from podunit.models import ContainerMetadata, GenerateOptions, PodInfo, UnitDescriptor

EXECUTABLE = "/usr/bin/podman"
CIDFILE = "--cidfile={{{{container_id_file}}}}"


def make_descriptor(command: List[str], env: Optional[List[str]] = None, pod: Optional[PodInfo] = None) -> UnitDescriptor:
    metadata = ContainerMetadata(id="0123abc", name="web", create_command=command, env=env or [], pod=pod)
    return build_descriptor(metadata, GenerateOptions(new=True, no_header=True), executable=EXECUTABLE)


def rewrite_tokens(command: List[str], **kwargs) -> List[str]:
    return rewrite_create_command(make_descriptor(command, **kwargs)).exec_start.split(" ")


def test_rewrite_named_container():
    tokens = rewrite_tokens(["podman", "run", "--name", "x", "alpine", "top"])
    assert tokens == [
        EXECUTABLE, "run", CIDFILE, "--cgroups=no-conmon", "--rm",
        "--sdnotify=conmon", "-d", "--replace",
        "--name", "x", "alpine", "top",
    ]


def test_rewrite_create_subcommand_becomes_run():
    tokens = rewrite_tokens(["podman", "create", "alpine"])
    assert tokens[:2] == [EXECUTABLE, "run"]
    assert "create" not in tokens


def test_rewrite_without_subcommand_fails():
    with pytest.raises(InvalidCreateCommandError):
        rewrite_create_command(make_descriptor(["podman", "start", "web"]))


def test_find_subcommand_index_first_occurrence():
    assert find_subcommand_index(["podman", "--log-level=debug", "run", "alpine", "run"]) == 2


def test_rewrite_keeps_root_flags_before_run():
    tokens = rewrite_tokens(["podman", "--root", "/var/lib/alt", "--log-level=debug", "run", "alpine"])
    assert tokens[:5] == [EXECUTABLE, "--root", "/var/lib/alt", "--log-level=debug", "run"]


def test_rewrite_existing_detach_is_not_duplicated():
    tokens = rewrite_tokens(["podman", "run", "-d", "alpine"])
    assert tokens.count("-d") == 1


def test_rewrite_detach_false_is_replaced():
    tokens = rewrite_tokens(["podman", "run", "--detach=false", "alpine"])
    assert "--detach=false" not in tokens
    assert tokens.count("-d") == 1


def test_rewrite_grouped_detach_false_keeps_other_shorthands():
    tokens = rewrite_tokens(["podman", "run", "-id=false", "alpine"])
    assert "-id=false" not in tokens
    assert tokens[-3:] == ["-d", "-i", "alpine"]


def test_rewrite_removes_every_false_detach():
    tokens = rewrite_tokens(["podman", "run", "-d=false", "--detach=false", "--name", "x", "alpine"])
    assert tokens[-6:] == ["--sdnotify=conmon", "-d", "--replace", "--name", "x", "alpine"]
    assert "-d=false" not in tokens
    assert "--detach=false" not in tokens


def test_remove_flag_assignments_by_position():
    command = ["-id=false", "--replace=false", "--name", "x", "alpine"]
    assert remove_flag_assignments(command, [(0, 2), (1, 0)]) == ["-i", "--name", "x", "alpine"]


def test_rewrite_unnamed_container_gets_no_replace():
    tokens = rewrite_tokens(["podman", "run", "alpine"])
    assert "--replace" not in tokens


def test_rewrite_explicit_replace_is_not_duplicated():
    tokens = rewrite_tokens(["podman", "run", "--name", "x", "--replace", "alpine"])
    assert tokens.count("--replace") == 1


def test_rewrite_replace_false_is_replaced():
    tokens = rewrite_tokens(["podman", "run", "--name", "x", "--replace=false", "alpine"])
    assert "--replace=false" not in tokens
    assert tokens.count("--replace") == 1


def test_rewrite_keeps_explicit_sdnotify():
    tokens = rewrite_tokens(["podman", "run", "--sdnotify=container", "alpine"])
    assert "--sdnotify=conmon" not in tokens
    assert "--sdnotify=container" in tokens


def test_rewrite_drops_flags_it_owns_but_not_container_args():
    tokens = rewrite_tokens(
        ["podman", "run", "--rm", "--cgroups=enabled", "--cidfile", "/tmp/id", "--pidfile=/tmp/pid", "alpine", "echo", "--rm"]
    )
    assert "--cgroups=enabled" not in tokens
    assert "/tmp/id" not in tokens
    assert "--pidfile=/tmp/pid" not in tokens
    assert tokens.count("--rm") == 2
    assert tokens[-3:] == ["alpine", "echo", "--rm"]


def test_rewrite_pod_member(pod_info: PodInfo):
    tokens = rewrite_tokens(
        ["podman", "run", "--pod", "backend", "--pod-id-file=/tmp/pod.id", "--name", "x", "alpine"],
        pod=pod_info,
    )
    assert tokens[5:7] == ["--pod-id-file", "{{{{pod.pod_id_file}}}}"]
    assert "--pod" not in tokens
    assert "backend" not in tokens
    assert "--pod-id-file=/tmp/pod.id" not in tokens


def test_rewrite_pins_env_references():
    rewritten = rewrite_create_command(
        make_descriptor(
            ["podman", "run", "-e", "FOO", "-e", "BAR=1", "-e", "MISSING", "alpine"],
            env=["FOO=hello world", "BAR=2"],
        )
    )
    assert rewritten.extra_envs == ['"FOO=hello world"']
    assert "-e FOO -e BAR=1 -e MISSING alpine" in rewritten.exec_start


def test_rewrite_escapes_each_token_once():
    rewritten = rewrite_create_command(make_descriptor(["podman", "run", "alpine", "sh", "-c", "echo $HOME"]))
    assert rewritten.exec_start.endswith('alpine sh -c "echo $$HOME"')


def test_filter_helpers_only_touch_flag_region():
    command = ["--pod", "p", "--cidfile=/x", "img", "--pod", "q"]
    assert filter_pod_flags(command, 3) == ["--cidfile=/x", "img", "--pod", "q"]
    assert filter_common_container_flags(command, 3) == ["--pod", "p", "img", "--pod", "q"]
