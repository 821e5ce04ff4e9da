"""Dispatch — deliver resolved targets to an existing or new editor instance."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from gvtab.editor import EditorPort, LaunchError, SendError, ServerHandle
from gvtab.types import frozen_slots

LOG = logging.getLogger("gvtab.dispatcher")


class Route(Enum):
    EXISTING = "existing"
    NEW = "new"


@frozen_slots
class DispatchOutcome:
    """How the targets reached the editor."""

    route: Route
    targets: tuple[Path, ...]
    handle: ServerHandle | None = None
    pid: int | None = None
    fell_back: bool = False


def dispatch(
    targets: tuple[Path, ...],
    handle: ServerHandle | None,
    editor: EditorPort,
    *,
    send_timeout: float,
) -> DispatchOutcome:
    """Open *targets* through *handle*, or in a freshly launched instance.

    A send that fails or times out is treated as the server having gone
    away, and is followed by exactly one launch with the same targets.

    Raises:
        LaunchError: If the launch (direct or fallback) fails.
    """
    if not targets:
        raise ValueError("dispatch requires at least one target")

    send_failure: SendError | None = None
    if handle is not None:
        try:
            editor.send_open_files(handle, targets, send_timeout)
        except SendError as exc:
            LOG.warning("falling back to a new instance: %s", exc)
            send_failure = exc
        else:
            return DispatchOutcome(Route.EXISTING, targets, handle=handle)

    try:
        pid = editor.launch_new_instance(targets, register_as_reusable=True)
    except LaunchError as exc:
        if send_failure is not None:
            raise LaunchError(f"{send_failure}; fallback launch failed: {exc}") from exc
        raise
    return DispatchOutcome(Route.NEW, targets, pid=pid, fell_back=send_failure is not None)
