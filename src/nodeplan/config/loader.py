# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodeplan/config/loader.py

import logging
import os
import yaml
from pathlib import Path
from typing import List
from .models import ClusterSpec, FleetConfig, MachineRecord

log = logging.getLogger("nodeplan")


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Recursively merge *override* into *base* (mutates base).
    Only overwrites when the override value is non-empty.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            _deep_merge(base[key], value)
        else:
            if value not in (None, ""):
                base[key] = value
    return base


def _find_secrets_file(config_path: Path) -> Path | None:
    """
    Locate secrets.yaml using this priority:

    1. NODEPLAN_SECRETS_FILE environment variable (explicit override)
    2. secrets.yaml in the same directory as the fleet file
    """
    env = os.environ.get("NODEPLAN_SECRETS_FILE")
    if env:
        p = Path(env)
        if p.is_file():
            return p
        log.warning("NODEPLAN_SECRETS_FILE=%s does not exist, skipping", env)
        return None

    p = config_path.parent / "secrets.yaml"
    if p.is_file():
        return p

    return None


def _load_yaml(path: Path) -> dict:
    """Load a YAML mapping, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    expanded = os.path.expandvars(raw)
    data = yaml.safe_load(expanded) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping, got {type(data).__name__}")
    return data


def load_fleet(path: str | Path) -> FleetConfig:
    """
    Load and validate a fleet file: the cluster spec, its machines and the
    planner settings.

    A ``secrets.yaml`` mirroring the fleet file structure (for example the
    S3 snapshot credentials) is deep-merged before validation. ``${ENV_VAR}``
    placeholders are expanded in both files.
    """
    path = Path(path)
    data = _load_yaml(path)

    secrets_path = _find_secrets_file(path)
    if secrets_path:
        log.debug("Merging secrets from %s", secrets_path)
        secrets = _load_yaml(secrets_path)
        _deep_merge(data, secrets)
    else:
        log.debug("No secrets.yaml found, proceeding without secrets merge")

    return FleetConfig.model_validate(data)


class FleetFileReader:
    """
    ClusterReader and MachineReader backed by a fleet file. The file is
    re-read on every call so each planning pass sees the current content.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def get_cluster(self, name: str) -> ClusterSpec:
        cluster = load_fleet(self.path).cluster
        if cluster.name != name:
            raise KeyError(f"Cluster '{name}' not found in {self.path}")
        return cluster

    def list_machines(self, cluster_name: str) -> List[MachineRecord]:
        fleet = load_fleet(self.path)
        if fleet.cluster.name != cluster_name:
            raise KeyError(f"Cluster '{cluster_name}' not found in {self.path}")
        return list(fleet.machines)
