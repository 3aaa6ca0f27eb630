"""Tests for the placeholder site service."""
from collections import namedtuple
from unittest.mock import MagicMock, patch

import psutil
import pytest
import requests
from conftest import FakeRunner

from homeport.core.errors import FailureKind, PlaceholderError
from homeport.services.docker.placeholder import PlaceholderOutcome, PlaceholderService
from homeport.services.docker.runtime import ContainerRuntime

Addr = namedtuple("Addr", "ip port")
Conn = namedtuple("Conn", "laddr status pid")


def service_with(runner, config, connections=()):
    runtime = ContainerRuntime(runner, connection_source=lambda: list(connections))
    return PlaceholderService(runtime, config)


def ok_response():
    resp = MagicMock()
    resp.status_code = 200
    return resp


def test_host_service_removes_placeholder(config):
    runner = FakeRunner().on(["docker", "ps", "-a"], stdout="homeport-welcome\n")
    host = Conn(Addr("0.0.0.0", 3000), psutil.CONN_LISTEN, 4242)
    service = service_with(runner, config, [host])

    with patch("homeport.services.docker.runtime._process_name", return_value="node"):
        outcome = service.ensure_running()

    assert outcome == PlaceholderOutcome.HOST_SERVICE
    assert runner.called("docker", "stop") == [["docker", "stop", "homeport-welcome"]]
    assert runner.called("docker", "rm") == [["docker", "rm", "homeport-welcome"]]
    assert runner.called("docker", "run") == []
    assert runner.called("docker", "build") == []


def test_running_placeholder_left_alone(config):
    runner = (
        FakeRunner()
        .on(["docker", "ps", "--filter"], stdout="homeport-welcome\n")
        .on(["docker", "port", "homeport-welcome"], stdout="0.0.0.0:3000\n")
    )

    assert service_with(runner, config).ensure_running() == PlaceholderOutcome.ALREADY_RUNNING
    assert runner.called("docker", "run") == []


def test_starts_placeholder(config):
    runner = FakeRunner()
    service = service_with(runner, config)

    with patch("homeport.services.docker.placeholder.requests.get", return_value=ok_response()) as get:
        assert service.ensure_running() == PlaceholderOutcome.STARTED

    context = config.placeholder_dir
    assert "FROM nginx:alpine" in (context / "Dockerfile").read_text()
    assert "port 3000" in (context / "index.html").read_text()
    assert runner.called("docker", "build") == [
        ["docker", "build", "-t", "homeport-welcome:latest", str(context)],
    ]
    run = runner.called("docker", "run")[0]
    assert ["-p", "3000:80"] == run[run.index("-p"):run.index("-p") + 2]
    assert "--network" in run and "homeport-proxy" in run
    get.assert_called_once_with("http://localhost:3000", timeout=config.http_timeout)


def test_build_failure_is_placeholder_error(config):
    runner = FakeRunner().on(["docker", "build"], returncode=1, stderr="no space left")

    with pytest.raises(PlaceholderError) as exc:
        service_with(runner, config).ensure_running()
    assert exc.value.kind == FailureKind.PLACEHOLDER
    assert "no space left" in str(exc.value)


def test_start_failure_is_placeholder_error(config):
    runner = FakeRunner().on(["docker", "run"], returncode=125, stderr="port is already allocated")

    with pytest.raises(PlaceholderError, match="already allocated"):
        service_with(runner, config).ensure_running()


def test_unhealthy_placeholder_only_warns(config):
    service = service_with(FakeRunner(), config)

    with patch("homeport.services.docker.placeholder.requests.get", side_effect=requests.ConnectionError()):
        assert service.check_health() is None
