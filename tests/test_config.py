from pathlib import Path

import pytest

from nodeward.api.model import ClusterState, ControlPlaneMember, WorkerMember
from nodeward.config import (
    _deep_merge,
    load_config,
    resolve_cluster,
    resolve_pools,
    resolve_triton,
)
from nodeward.core.exceptions import ConfigurationError
from nodeward.providers.triton.config import DEFAULT_URL

pytestmark = [pytest.mark.unit]

TRITON_ENV = ("TRITON_URL", "TRITON_ACCOUNT", "TRITON_KEY_ID", "TRITON_KEY_MATERIAL", "TRITON_USER")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in TRITON_ENV:
        monkeypatch.delenv(name, raising=False)


class TestDeepMerge:
    def test_shallow_override(self):
        assert _deep_merge({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}

    def test_nested_merge(self):
        base = {"triton": {"account": "acme", "package": "small"}}
        override = {"triton": {"package": "large"}}
        assert _deep_merge(base, override) == {"triton": {"account": "acme", "package": "large"}}

    def test_override_adds_new_pools(self):
        base = {"pools": {"master": {"role": "control-plane"}}}
        override = {"pools": {"node": {"role": "worker"}}}
        assert set(_deep_merge(base, override)["pools"]) == {"master", "node"}


class TestLoadConfig:
    def test_project_only(self, tmp_path: Path):
        (tmp_path / "nodeward.toml").write_text('[pools.master]\nrole = "control-plane"\n')
        result = load_config(project_dir=tmp_path, global_path=tmp_path / "nonexistent.toml")
        assert result["pools"]["master"]["role"] == "control-plane"
        assert result["triton"] == {}
        assert result["cluster"] == {}

    def test_project_overrides_global(self, tmp_path: Path):
        global_toml = tmp_path / "defaults.toml"
        global_toml.write_text('[triton]\naccount = "acme"\npackage = "small"\n')
        project_dir = tmp_path / "project"
        project_dir.mkdir()
        (project_dir / "nodeward.toml").write_text('[triton]\npackage = "large"\n')

        result = load_config(project_dir=project_dir, global_path=global_toml)

        assert result["triton"] == {"account": "acme", "package": "large"}

    def test_invalid_toml_raises(self, tmp_path: Path):
        (tmp_path / "nodeward.toml").write_text("[triton\naccount = ")
        with pytest.raises(ConfigurationError, match="Invalid TOML"):
            load_config(project_dir=tmp_path, global_path=tmp_path / "nonexistent.toml")


class TestResolveTriton:
    def test_defaults(self):
        config = resolve_triton({"triton": {"account": "acme"}})
        assert config.account == "acme"
        assert config.url == DEFAULT_URL
        assert config.package == "k4-highcpu-kvm-1.75G"
        assert config.address_attempts == 100
        assert config.missing_reference == "fail"

    def test_environment_fallback(self, monkeypatch):
        monkeypatch.setenv("TRITON_ACCOUNT", "from-env")
        monkeypatch.setenv("TRITON_KEY_ID", "aa:bb")
        config = resolve_triton({"triton": {}})
        assert config.account == "from-env"
        assert config.key_id == "aa:bb"

    def test_file_wins_over_environment(self, monkeypatch):
        monkeypatch.setenv("TRITON_ACCOUNT", "from-env")
        assert resolve_triton({"triton": {"account": "acme"}}).account == "acme"

    def test_unknown_field_raises(self):
        with pytest.raises(ConfigurationError, match=r"\[triton\]"):
            resolve_triton({"triton": {"regon": "us-east-1"}})


class TestResolveCluster:
    def test_port_is_stringified(self):
        state = resolve_cluster({"cluster": {"name": "kube", "port": 6443}})
        assert state == ClusterState(name="kube", port="6443")

    def test_defaults(self):
        assert resolve_cluster({}) == ClusterState()


class TestResolvePools:
    def test_control_plane_and_worker(self):
        config = {
            "cluster": {"identifiers": {"master": "i-master"}},
            "pools": {
                "master": {"role": "control-plane", "bootstrap_scripts": ["triton_k8s_master.sh"]},
                "node": {"role": "worker", "control_plane": "master", "tags": {"env": "dev"}},
            },
        }

        pools = resolve_pools(config)

        assert pools["master"].member == ControlPlaneMember()
        assert pools["master"].identifier == "i-master"
        assert pools["master"].bootstrap_scripts == ("triton_k8s_master.sh",)
        assert pools["node"].member == WorkerMember(control_plane_id="i-master")
        assert pools["node"].identifier == ""
        assert pools["node"].tags == {"env": "dev"}

    def test_worker_with_explicit_control_plane_id(self):
        config = {"pools": {"node": {"role": "worker", "control_plane_id": "i-42"}}}
        assert resolve_pools(config)["node"].member == WorkerMember(control_plane_id="i-42")

    def test_worker_before_control_plane_exists(self):
        config = {"pools": {"node": {"role": "worker", "control_plane": "master"}}}
        assert resolve_pools(config)["node"].member == WorkerMember(control_plane_id="")

    def test_explicit_state_overrides_cluster_section(self):
        config = {"pools": {"master": {"role": "control-plane"}}}
        state = ClusterState(identifiers={"master": "i-live"})
        assert resolve_pools(config, state)["master"].identifier == "i-live"

    def test_worker_without_control_plane_raises(self):
        with pytest.raises(ConfigurationError, match="control_plane"):
            resolve_pools({"pools": {"node": {"role": "worker"}}})

    def test_missing_role_raises(self):
        with pytest.raises(ConfigurationError, match="missing 'role'"):
            resolve_pools({"pools": {"node": {}}})

    def test_unknown_role_raises(self):
        with pytest.raises(ConfigurationError, match="Unknown role 'etcd'"):
            resolve_pools({"pools": {"node": {"role": "etcd"}}})
