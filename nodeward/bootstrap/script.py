"""Bootstrap script rendering.

The rendered script is the instance's ``user-script`` metadata: a header
that drops the cluster state as JSON at ``CLUSTER_JSON_PATH``, followed by
every referenced script in order. Scripts read injected values with jq::

    MASTER=$(jq -r '.values.INJECTEDMASTER' /etc/nodeward/cluster.json)
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from importlib.resources import files
from pathlib import Path
from typing import Final

from nodeward.api.model import ClusterState
from nodeward.core.exceptions import RenderError
from nodeward.infra.http import HttpClient, HttpError
from nodeward.observability.logger import logger

NODEWARD_DIR: Final = "/etc/nodeward"
CLUSTER_JSON_PATH: Final = f"{NODEWARD_DIR}/cluster.json"

_log = logger.bind(component="bootstrap")

HEADER_TEMPLATE: Final = """#!/usr/bin/env bash
set -e

mkdir -p {dir}
cat <<'NODEWARD_CLUSTER_EOF' > {path}
{cluster_json}
NODEWARD_CLUSTER_EOF
"""


def render_header(state: ClusterState) -> str:
    cluster_json = json.dumps(state.to_dict(), indent=2, sort_keys=True)
    return HEADER_TEMPLATE.format(dir=NODEWARD_DIR, path=CLUSTER_JSON_PATH, cluster_json=cluster_json)


async def _fetch(url: str) -> str:
    async with HttpClient(url, timeout=30) as http:
        return await http.request("GET", "", format="text")


def _read_local(reference: str, search_paths: Sequence[Path]) -> str | None:
    candidates = [Path(reference).expanduser()]
    candidates += [Path(base) / reference for base in search_paths]
    for candidate in candidates:
        if candidate.is_file():
            return candidate.read_text()

    shipped = files("nodeward.bootstrap").joinpath("scripts", reference)
    if shipped.is_file():
        return shipped.read_text()
    return None


async def load_script(reference: str, search_paths: Sequence[Path] = ()) -> str:
    """Load one script by URL, path, search path, or shipped script name."""
    try:
        if reference.startswith(("http://", "https://")):
            return await _fetch(reference)
        content = _read_local(reference, search_paths)
    except (HttpError, OSError, UnicodeDecodeError) as e:
        raise RenderError(f"Unable to load bootstrap script '{reference}': {e}") from e

    if content is None:
        raise RenderError(f"Bootstrap script '{reference}' not found")
    return content


async def build_bootstrap_script(
    scripts: Sequence[str],
    state: ClusterState,
    *,
    search_paths: Sequence[Path] = (),
) -> str:
    """Render the user-script for an instance.

    Raises:
        RenderError: A script reference could not be resolved or loaded.
    """
    parts = [render_header(state)]
    for reference in scripts:
        _log.debug("Loading bootstrap script {reference}", reference=reference)
        content = await load_script(reference, search_paths)
        parts.append(f"# --- {reference} ---\n{content.rstrip()}\n")
    return "\n".join(parts)
