"""TOML-based provider, cluster and pool configuration.

Loads ~/.nodeward/defaults.toml (global) and nodeward.toml (project),
merges them, and resolves the [triton], [cluster] and [pools.*] sections.

Example nodeward.toml::

    [triton]
    account = "acme"
    key_id = "f7:75:b3:53:fe:d5:5d:26:13:2a:7f:9b:6b:2e:94:94"

    [cluster]
    name = "kube"
    port = 6443

    [pools.master]
    role = "control-plane"
    bootstrap_scripts = ["triton_k8s_master.sh"]

    [pools.node]
    role = "worker"
    control_plane = "master"
    bootstrap_scripts = ["triton_k8s_node.sh"]
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from nodeward.api.model import ClusterState, ControlPlaneMember, Member, NodePool, WorkerMember
from nodeward.core.exceptions import ConfigurationError
from nodeward.providers.triton.config import Triton

type RawConfig = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".nodeward" / "defaults.toml"
PROJECT_CONFIG_NAME = "nodeward.toml"


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME
    project_cfg = _read_toml(project_path)

    merged = _deep_merge(global_cfg, project_cfg)
    merged.setdefault("triton", {})
    merged.setdefault("cluster", {})
    merged.setdefault("pools", {})
    return merged


def resolve_triton(config: RawConfig) -> Triton:
    """Build the Triton config; unset credentials fall back to TRITON_* env vars."""
    try:
        return Triton(**config.get("triton", {})).with_environment()
    except TypeError as e:
        raise ConfigurationError(f"Invalid [triton] section: {e}") from e


def resolve_cluster(config: RawConfig) -> ClusterState:
    raw = dict(config.get("cluster", {}))
    return ClusterState(
        name=str(raw.get("name", "")),
        endpoint=str(raw.get("endpoint", "")),
        port=str(raw.get("port", "443")),
        values={str(k): str(v) for k, v in raw.get("values", {}).items()},
        identifiers={str(k): str(v) for k, v in raw.get("identifiers", {}).items()},
    )


def _build_member(name: str, raw: RawConfig, state: ClusterState) -> Member:
    match raw.get("role"):
        case "control-plane":
            return ControlPlaneMember()
        case "worker":
            if control_plane_id := raw.get("control_plane_id"):
                return WorkerMember(control_plane_id=str(control_plane_id))
            control_plane = raw.get("control_plane")
            if control_plane is None:
                raise ConfigurationError(
                    f"Worker pool '{name}' needs 'control_plane' or 'control_plane_id'"
                )
            return WorkerMember(control_plane_id=state.identifiers.get(control_plane, ""))
        case None:
            raise ConfigurationError(f"Pool '{name}' missing 'role' field")
        case other:
            raise ConfigurationError(
                f"Unknown role '{other}' for pool '{name}'. Valid: control-plane, worker"
            )


def resolve_pools(config: RawConfig, state: ClusterState | None = None) -> dict[str, NodePool]:
    """Build every pool, taking identifiers from the persisted state when unset."""
    state = state or resolve_cluster(config)
    pools: dict[str, NodePool] = {}
    for name, raw in config.get("pools", {}).items():
        pools[name] = NodePool(
            name=name,
            member=_build_member(name, raw, state),
            bootstrap_scripts=tuple(raw.get("bootstrap_scripts", ())),
            tags={str(k): str(v) for k, v in raw.get("tags", {}).items()},
            identifier=str(raw.get("identifier") or state.identifiers.get(name, "")),
        )
    return pools
