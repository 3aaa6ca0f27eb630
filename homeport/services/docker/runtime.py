"""
Docker engine queries and mutations via the docker CLI.

Queries are advisory: a failed or missing command yields a negative or
empty answer instead of an exception. Mutations return the CommandResult so
callers decide whether a failure is fatal.
"""

import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

import psutil

from homeport.core.errors import ContainerRuntimeError
from homeport.core.logger import get_logger
from homeport.core.runner import CommandResult, CommandRunner
from homeport.models.proxy import ContainerState, ContainerStatus

logger = get_logger(__name__)

# Processes that hold published ports on behalf of containers
DOCKER_PORT_HOLDERS = (
    "docker-proxy",
    "dockerd",
    "com.docker.backend",
    "com.docker.vpnkit",
    "vpnkit",
    "rootlesskit",
    "slirp4netns",
)


@dataclass(frozen=True)
class PortListener:
    """A socket listening on a TCP port."""

    port: int
    pid: Optional[int] = None
    process: Optional[str] = None

    @property
    def owned_by_docker(self) -> bool:
        if not self.process:
            return False
        return self.process.lower().startswith(DOCKER_PORT_HOLDERS)

    def describe(self) -> str:
        if self.process:
            return f"{self.process} (pid {self.pid})"
        return "unknown process"


class ContainerRuntime:
    """
    Uniform access to containers and networks on the local Docker engine.

    Example:
        runtime = ContainerRuntime(CommandRunner())
        runtime.preflight()
        if runtime.is_running("traefik"):
            runtime.port_bound("traefik", [80, 443])
    """

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        connection_source: Optional[Callable[[], Iterable]] = None,
    ):
        self.runner = runner or CommandRunner()
        self.connection_source = connection_source or (lambda: psutil.net_connections(kind="tcp"))

    # Preflight

    def installed(self) -> bool:
        return self.runner.which("docker") is not None

    def running(self) -> bool:
        return self._docker(["info"]).ok

    def preflight(self) -> None:
        """Raise when the engine is unusable.

        Raises:
            ContainerRuntimeError: docker missing or daemon not running
        """
        if not self.installed():
            raise ContainerRuntimeError(
                "Docker is not installed. Get it from https://www.docker.com/get-started"
            )
        if not self.running():
            raise ContainerRuntimeError(
                "Docker is not running. Start the Docker daemon (or Docker Desktop) and retry."
            )
        logger.debug("Docker engine is available")

    # Container queries

    def exists(self, name: str) -> bool:
        return name in self._names(["ps", "-a", "--filter", f"name=^{name}$", "--format", "{{.Names}}"])

    def is_running(self, name: str) -> bool:
        return name in self._names(["ps", "--filter", f"name=^{name}$", "--format", "{{.Names}}"])

    def port_bound(self, name: str, ports: Sequence[int]) -> bool:
        """True only if every port has an engine-reported binding on the running container."""
        if not self.is_running(name):
            return False
        for port in ports:
            result = self._docker(["port", name, str(port)])
            if not result.ok or not result.stdout.strip():
                return False
        return True

    def state(self, name: str, ports: Sequence[int] = ()) -> ContainerState:
        if self.is_running(name):
            bound = self.port_bound(name, ports) if ports else True
            return ContainerState(name, ContainerStatus.RUNNING, ports_bound=bound)
        if self.exists(name):
            return ContainerState(name, ContainerStatus.STOPPED)
        return ContainerState(name, ContainerStatus.ABSENT)

    def container_network(self, name: str) -> Optional[str]:
        if not self.is_running(name):
            return None
        result = self._docker([
            "inspect", name, "--format", "{{range .NetworkSettings.Networks}}{{.NetworkID}}{{end}}",
        ])
        if not result.ok:
            return None
        return result.stdout.strip() or None

    def logs(self, name: str, tail: int = 5) -> str:
        result = self._docker(["logs", name, "--tail", str(tail)])
        # docker logs mirrors the container's stderr
        return (result.stdout + result.stderr).strip()

    # Port queries

    def published_ports(self) -> List[int]:
        """Host ports published by running containers."""
        result = self._docker(["ps", "--format", "{{.Ports}}"])
        if not result.ok:
            return []
        ports = []
        for match in re.finditer(r'(?:0\.0\.0\.0|\[::\]|\*|::):(\d+)->', result.stdout):
            port = int(match.group(1))
            if port not in ports:
                ports.append(port)
        return ports

    def port_listeners(self, port: int) -> List[PortListener]:
        """Sockets listening on the port, with owning process when visible."""
        try:
            connections = list(self.connection_source())
        except (psutil.Error, OSError) as e:
            logger.debug(f"psutil connection listing failed ({e}), using CLI fallback")
            return self._port_listeners_cli(port)

        listeners = []
        for conn in connections:
            if conn.status != psutil.CONN_LISTEN or not conn.laddr or conn.laddr.port != port:
                continue
            listeners.append(PortListener(port, conn.pid, _process_name(conn.pid)))
        return listeners

    def port_in_use_externally(self, port: int) -> bool:
        """True if any container or host process is listening on the port."""
        if port in self.published_ports():
            return True
        return bool(self.port_listeners(port))

    def host_process_on_port(self, port: int) -> bool:
        """True if a non-container process listens on the port.

        Listeners whose owner cannot be seen are attributed to containers
        only when a running container publishes that port.
        """
        listeners = self.port_listeners(port)
        if not listeners:
            return False

        published = None
        for listener in listeners:
            if listener.owned_by_docker:
                continue
            if listener.process:
                return True
            if published is None:
                published = port in self.published_ports()
            if not published:
                return True
        return False

    # Mutations

    def stop_and_remove(self, name: str) -> bool:
        """Stop and remove a container. No-op when it does not exist."""
        if not self.exists(name):
            return True
        logger.info(f"Stopping container {name}...")
        self._docker(["stop", name])
        return self._docker(["rm", name]).ok

    def ensure_network(self, name: str) -> str:
        existing = self._names(["network", "ls", "--filter", f"name=^{name}$", "--format", "{{.Name}}"])
        if name not in existing:
            logger.info(f"Creating Docker network '{name}'...")
            result = self._docker(["network", "create", name])
            if not result.ok:
                logger.warning(f"⚠ Could not create network {name}: {result.output}")
        return name

    def build_image(self, tag: str, context_dir: Path) -> CommandResult:
        return self._docker(["build", "-t", tag, str(context_dir)])

    def run_container(
        self,
        name: str,
        image: str,
        ports: Sequence[str] = (),
        network: Optional[str] = None,
        restart: str = "unless-stopped",
    ) -> CommandResult:
        args = ["run", "-d", "--name", name]
        if network:
            args += ["--network", network]
        for mapping in ports:
            args += ["-p", mapping]
        args += ["--restart", restart, image]
        return self._docker(args)

    def compose_up(self, project_dir: Path) -> CommandResult:
        return self._docker(["compose", "up", "-d"], cwd=project_dir)

    def compose_restart(self, project_dir: Path) -> CommandResult:
        return self._docker(["compose", "restart"], cwd=project_dir)

    # Helpers

    def _docker(self, args: List[str], cwd: Optional[Path] = None) -> CommandResult:
        return self.runner.run(["docker"] + args, cwd=cwd)

    def _names(self, args: List[str]) -> List[str]:
        result = self._docker(args)
        if not result.ok:
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def _port_listeners_cli(self, port: int) -> List[PortListener]:
        if sys.platform == "darwin":
            result = self.runner.run(["lsof", f"-iTCP:{port}", "-sTCP:LISTEN", "-P", "-n"])
            listeners = []
            for line in result.stdout.splitlines()[1:]:
                fields = line.split()
                if len(fields) > 1 and fields[1].isdigit():
                    listeners.append(PortListener(port, int(fields[1]), fields[0]))
            return listeners

        result = self.runner.run(["ss", "-tlnpH", f"sport = :{port}"])
        listeners = []
        for line in result.stdout.splitlines():
            match = re.search(r'users:\(\("([^"]+)",pid=(\d+)', line)
            if match:
                listeners.append(PortListener(port, int(match.group(2)), match.group(1)))
            elif line.strip():
                listeners.append(PortListener(port))
        return listeners


def _process_name(pid: Optional[int]) -> Optional[str]:
    if not pid:
        return None
    try:
        return psutil.Process(pid).name()
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return None
