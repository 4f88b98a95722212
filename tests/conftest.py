# tests/conftest.py
from datetime import datetime, timezone

import pytest
import structlog

from podunit.models import ContainerMetadata, PodInfo


def fixed_now() -> datetime:
    return datetime(2006, 1, 2, 15, 4, 5, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_structlog():
    """configure_logging binds the current stderr; drop it once the test's capture is gone."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def clock():
    """A clock frozen at Mon Jan  2 15:04:05 UTC 2006."""
    return fixed_now


@pytest.fixture
def container_metadata() -> ContainerMetadata:
    return ContainerMetadata(
        id="0123abc",
        name="web",
        stop_timeout=5,
        conmon_pid_file="/run/user/1000/containers/overlay-containers/0123abc/userdata/conmon.pid",
        run_root="/run/user/1000/containers",
        create_command=["/usr/bin/podman", "run", "--name", "web", "alpine", "top"],
        env=["PATH=/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin", "FOO=hello world"],
    )


@pytest.fixture
def pod_info() -> PodInfo:
    return PodInfo(service_name="pod-backend", pod_id_file="%t/pod-backend.pod-id")


@pytest.fixture
def pod_container_metadata(container_metadata: ContainerMetadata, pod_info: PodInfo) -> ContainerMetadata:
    return container_metadata.model_copy(
        update={
            "create_command": ["/usr/bin/podman", "run", "--pod", "backend", "--name", "web", "alpine", "top"],
            "pod": pod_info,
        }
    )
