"""Open pipeline — wires resolver, locator, and dispatcher together."""

from __future__ import annotations

from gvtab.config import Config
from gvtab.dispatcher import DispatchOutcome, dispatch
from gvtab.editor import EditorPort, VimServer
from gvtab.locator import locate
from gvtab.resolver import resolve
from gvtab.types import Paths


def make_editor(config: Config) -> VimServer:
    """Build the gvim capability described by *config*."""
    return VimServer(command=config.editor, server_name=config.server_name)


def open_paths(
    config: Config,
    paths: Paths,
    editor: EditorPort | None = None,
) -> DispatchOutcome:
    """Resolve *paths* and hand them to a reusable editor instance.

    Resolution completes before the editor is contacted, so a resolution
    failure never leaves files half-opened.

    Args:
        config: Runtime configuration (limits, editor, timeouts).
        paths: Raw path arguments.
        editor: Editor capability; defaults to gvim built from *config*.

    Returns:
        The outcome of the dispatch.

    Raises:
        ResolutionError: If the paths could not be resolved.
        LaunchError: If no instance could be reached or started.
    """
    targets = resolve(paths, config.limits)

    if editor is None:
        editor = make_editor(config)

    handle = locate(editor, timeout=config.probe_timeout)
    return dispatch(targets, handle, editor, send_timeout=config.send_timeout)
