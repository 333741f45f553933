"""Bootstrap script rendering and shipped scripts."""

from .script import CLUSTER_JSON_PATH, build_bootstrap_script, load_script, render_header

__all__ = ["CLUSTER_JSON_PATH", "build_bootstrap_script", "load_script", "render_header"]
