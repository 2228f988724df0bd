"""Install and control monitor-power as a systemd service."""

from __future__ import annotations

import logging
import shlex
import subprocess
import sys
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)

SERVICE_NAME = "monitor-power"
SERVICE_DESCRIPTION = "Monitor power usage"

Runner = Callable[..., subprocess.CompletedProcess]

_UNIT_TEMPLATE = """\
[Unit]
Description={description}
After=network.target

[Service]
Type=simple
ExecStart={exec_start}
Restart=on-failure

[Install]
WantedBy=multi-user.target
"""


class ServiceError(RuntimeError):
    """A service management command failed."""


class SystemdService:
    """Thin wrapper around ``systemctl`` for a single unit."""

    def __init__(
        self,
        name: str = SERVICE_NAME,
        description: str = SERVICE_DESCRIPTION,
        unit_dir: str | Path = "/etc/systemd/system",
        runner: Runner = subprocess.run,
    ) -> None:
        self.name = name
        self.description = description
        self._unit_dir = Path(unit_dir)
        self._runner = runner

    @property
    def unit_path(self) -> Path:
        return self._unit_dir / f"{self.name}.service"

    def _systemctl(self, *args: str) -> subprocess.CompletedProcess:
        cmd = ["systemctl", *args]
        logger.debug("Running %s", shlex.join(cmd))
        try:
            return self._runner(cmd, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise ServiceError(f"cannot run systemctl: {exc}") from exc

    def _checked(self, *args: str) -> None:
        result = self._systemctl(*args)
        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            raise ServiceError(f"systemctl {' '.join(args)} failed: {detail}")

    def unit_text(self, *args: str) -> str:
        exec_start = shlex.join([sys.executable, "-m", "monitor_power", *args, "run"])
        return _UNIT_TEMPLATE.format(description=self.description, exec_start=exec_start)

    def install(self, *args: str) -> str:
        """Write the unit file with *args* passed to the ``run`` command."""
        if self.unit_path.exists():
            raise ServiceError(f"Install {self.description}: already installed")
        try:
            self._unit_dir.mkdir(parents=True, exist_ok=True)
            self.unit_path.write_text(self.unit_text(*args), encoding="utf-8")
        except OSError as exc:
            raise ServiceError(f"Install {self.description}: {exc}") from exc
        self._checked("daemon-reload")
        self._checked("enable", self.name)
        return f"Install {self.description}: ok"

    def remove(self) -> str:
        if not self.unit_path.exists():
            raise ServiceError(f"Removing {self.description}: not installed")
        self._systemctl("stop", self.name)
        self._checked("disable", self.name)
        try:
            self.unit_path.unlink()
        except OSError as exc:
            raise ServiceError(f"Removing {self.description}: {exc}") from exc
        self._checked("daemon-reload")
        return f"Removing {self.description}: ok"

    def start(self) -> str:
        if not self.unit_path.exists():
            raise ServiceError(f"Starting {self.description}: not installed")
        self._checked("start", self.name)
        return f"Starting {self.description}: ok"

    def stop(self) -> str:
        if not self.unit_path.exists():
            raise ServiceError(f"Stopping {self.description}: not installed")
        self._checked("stop", self.name)
        return f"Stopping {self.description}: ok"

    def status(self) -> str:
        if not self.unit_path.exists():
            raise ServiceError(f"Status {self.description}: not installed")
        result = self._systemctl("is-active", self.name)
        state = (result.stdout or "").strip() or "unknown"
        return f"{self.description} is {state}"
