"""Editor capability — probe, talk to, and launch a reusable gvim server.

The rest of gvtab only sees :class:`EditorPort`. :class:`VimServer` is the
concrete implementation on top of Vim's ``+clientserver`` feature; tests
substitute an in-memory fake.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Protocol

from gvtab.types import frozen_slots

LOG = logging.getLogger("gvtab.editor")

DEFAULT_EDITOR = "gvim"
DEFAULT_SERVER_NAME = "GVIM"


@frozen_slots
class ServerHandle:
    """A live editor server that accepts remote commands."""

    name: str


class EditorError(Exception):
    """Base class for failures talking to the editor."""


class ProbeError(EditorError):
    """The server list could not be queried."""


class SendError(EditorError):
    """An existing server did not accept the open-files command."""


class LaunchError(EditorError):
    """A new editor process could not be started."""


class EditorPort(Protocol):
    def probe_existing_instance(self, timeout: float) -> ServerHandle | None:
        """Return the reusable server if one is registered, else None."""

    def send_open_files(
        self, handle: ServerHandle, paths: Sequence[Path], timeout: float
    ) -> None:
        """Ask *handle* to open *paths* in order; return once accepted."""

    def launch_new_instance(
        self, paths: Sequence[Path], register_as_reusable: bool
    ) -> int:
        """Start a detached editor with *paths*; return its pid."""


def _vim_string(value: str) -> str:
    """Quote *value* as a Vim single-quoted string literal."""
    return "'" + value.replace("'", "''") + "'"


def open_files_expr(paths: Sequence[Path]) -> str:
    """Build a ``--remote-expr`` expression opening each path in a tab."""
    commands = [
        "'tab drop ' . fnameescape(" + _vim_string(str(p)) + ")" for p in paths
    ]
    commands.append("'call foreground()'")
    return "execute([" + ", ".join(commands) + "])"


class VimServer:
    """gvim client-server implementation of :class:`EditorPort`."""

    def __init__(
        self,
        command: str = DEFAULT_EDITOR,
        server_name: str = DEFAULT_SERVER_NAME,
        *,
        run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        spawn: Callable[..., subprocess.Popen] = subprocess.Popen,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self.command = command
        self.server_name = server_name
        self._run = run
        self._spawn = spawn
        self._which = which

    def _executable(self, error: type[EditorError]) -> str:
        exe = self._which(self.command)
        if exe is None:
            raise error(f"editor executable '{self.command}' not found on PATH")
        return exe

    def probe_existing_instance(self, timeout: float) -> ServerHandle | None:
        exe = self._executable(ProbeError)
        try:
            proc = self._run(
                [exe, "--serverlist"],
                capture_output=True,
                text=True,
                errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            raise ProbeError(f"server probe timed out after {timeout}s") from None
        except OSError as exc:
            raise ProbeError(f"server probe failed: {exc}") from None
        if proc.returncode != 0:
            raise ProbeError(f"server probe exited with status {proc.returncode}")

        wanted = self.server_name.upper()
        for line in proc.stdout.splitlines():
            if line.strip().upper() == wanted:
                return ServerHandle(name=line.strip())
        return None

    def send_open_files(
        self, handle: ServerHandle, paths: Sequence[Path], timeout: float
    ) -> None:
        exe = self._executable(SendError)
        argv = [exe, "--servername", handle.name, "--remote-expr", open_files_expr(paths)]
        try:
            proc = self._run(
                argv, capture_output=True, text=True, errors="replace", timeout=timeout
            )
        except subprocess.TimeoutExpired:
            raise SendError(f"server '{handle.name}' did not answer within {timeout}s") from None
        except OSError as exc:
            raise SendError(f"could not reach server '{handle.name}': {exc}") from None
        if proc.returncode != 0:
            detail = proc.stderr.strip() or f"exit status {proc.returncode}"
            raise SendError(f"server '{handle.name}' rejected the command: {detail}")

    def launch_new_instance(
        self, paths: Sequence[Path], register_as_reusable: bool
    ) -> int:
        exe = self._executable(LaunchError)
        argv = [exe]
        if register_as_reusable:
            argv += ["--servername", self.server_name]
        argv += ["-p", "--", *(str(p) for p in paths)]

        detach: dict[str, object] = {}
        if os.name == "posix":
            detach["start_new_session"] = True
        else:
            detach["creationflags"] = (
                subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
            )
        try:
            proc = self._spawn(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                **detach,
            )
        except OSError as exc:
            raise LaunchError(f"could not start '{self.command}': {exc}") from None
        # Detached and never waited on; mark it reaped so Popen does not warn.
        proc.returncode = 0
        LOG.info("launched %s (pid %d) with %d file(s)", self.command, proc.pid, len(paths))
        return proc.pid
