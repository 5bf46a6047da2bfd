"""SSH tunnel — forwards a local port to the search backend through ``ssh -L``."""

import logging
import re
import socket
import subprocess
import threading
import time
from dataclasses import dataclass

from logstasher.errors import TunnelError

logger = logging.getLogger(__name__)

TUNNEL_SPEC = re.compile(r"^(?:(?P<local>\d+):)?(?P<user>[^@:]+)@(?P<host>[^:]+)(?::(?P<port>\d+))?$")


@dataclass(frozen=True)
class TunnelSpec:
    user: str
    host: str
    port: int = 22
    local_port: int = 0


def parse_tunnel_spec(value: str) -> TunnelSpec:
    """Parse ``[local_port:]user@host[:port]``."""
    match = TUNNEL_SPEC.match(value.strip())
    if not match:
        raise TunnelError(
            f"Invalid SSH tunnel {value!r}, expected [local_port:]user@host[:port]"
        )
    return TunnelSpec(
        user=match.group("user"),
        host=match.group("host"),
        port=int(match.group("port") or 22),
        local_port=int(match.group("local") or 0),
    )


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class SSHTunnel:
    """Runs ssh in the background and signals once the local port accepts connections."""

    def __init__(self, spec: TunnelSpec, remote_host: str, remote_port: int,
                 probe_interval: float = 0.1):
        self._spec = spec
        self._remote_host = remote_host
        self._remote_port = remote_port
        self._probe_interval = probe_interval
        self.local_port = spec.local_port or _free_port()
        self._process: subprocess.Popen | None = None
        self._ready = threading.Event()
        self._stopped = threading.Event()
        self._thread = None

    @property
    def local_url(self) -> str:
        return f"http://localhost:{self.local_port}"

    def command(self) -> list[str]:
        return [
            "ssh", "-N",
            "-o", "ExitOnForwardFailure=yes",
            "-L", f"{self.local_port}:{self._remote_host}:{self._remote_port}",
            "-p", str(self._spec.port),
            f"{self._spec.user}@{self._spec.host}",
        ]

    def start(self):
        logger.info("Starting SSH tunnel %d:%s@%s:%d to %s:%d",
                    self.local_port, self._spec.user, self._spec.host, self._spec.port,
                    self._remote_host, self._remote_port)
        try:
            self._process = subprocess.Popen(self.command(), stdin=subprocess.DEVNULL)
        except OSError as exc:
            raise TunnelError(f"Failed to start ssh: {exc}") from exc
        self._thread = threading.Thread(target=self._probe, daemon=True)
        self._thread.start()

    def _probe(self):
        """Poll the local port until it accepts a connection or ssh exits."""
        while not self._stopped.is_set():
            if self._process.poll() is not None:
                return
            try:
                with socket.create_connection(("127.0.0.1", self.local_port), timeout=1.0):
                    logger.debug("SSH tunnel is accepting connections on %d", self.local_port)
                    self._ready.set()
                    return
            except OSError:
                self._stopped.wait(self._probe_interval)

    def wait_ready(self, timeout: float = 10.0):
        """Block until the tunnel is usable. Raises TunnelError otherwise."""
        if self._process is None:
            raise TunnelError("SSH tunnel was not started")
        deadline = time.monotonic() + timeout
        while not self._ready.wait(self._probe_interval):
            code = self._process.poll()
            if code is not None:
                raise TunnelError(f"ssh exited with status {code} before the tunnel was ready")
            if time.monotonic() >= deadline:
                raise TunnelError(f"SSH tunnel not ready after {timeout:.1f}s")

    def stop(self):
        self._stopped.set()
        if self._process and self._process.poll() is None:
            self._process.terminate()
            try:
                self._process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self._process.kill()
        if self._thread:
            self._thread.join(timeout=5)
