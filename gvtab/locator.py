"""Instance lookup — find a reusable editor server, if any."""

from __future__ import annotations

import logging

from gvtab.editor import EditorPort, ProbeError, ServerHandle

LOG = logging.getLogger("gvtab.locator")


def locate(editor: EditorPort, *, timeout: float) -> ServerHandle | None:
    """Probe once for a live server.

    A failed or timed-out probe is not an error: it means no server is
    available, and the caller launches a new one.
    """
    try:
        handle = editor.probe_existing_instance(timeout)
    except ProbeError as exc:
        LOG.debug("probe failed, assuming no server: %s", exc)
        return None

    if handle is None:
        LOG.info("no reusable editor server found")
    else:
        LOG.info("found editor server %s", handle.name)
    return handle
