# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodeplan/config/models.py

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RoleSelectorConfig(BaseModel):
    """
    Configuration applied to machines whose labels match the selector.
    An empty selector matches every machine.
    """
    model_config = ConfigDict(frozen=True)

    machine_label_selector: Dict[str, str] = Field(default_factory=dict)
    config: Dict[str, Any] = Field(default_factory=dict)

    def matches(self, labels: Dict[str, str]) -> bool:
        return all(labels.get(k) == v for k, v in self.machine_label_selector.items())


class EtcdS3(BaseModel):
    """Remote snapshot target. Passed through to etcd machines untouched."""
    model_config = ConfigDict(frozen=True)

    bucket: Optional[str] = None
    endpoint: Optional[str] = None
    endpoint_ca: Optional[str] = None
    region: Optional[str] = None
    folder: Optional[str] = None
    skip_ssl_verify: bool = False
    cloud_credential_name: Optional[str] = None


class EtcdConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    disable_snapshots: bool = False
    snapshot_schedule_cron: Optional[str] = None
    snapshot_retention: Optional[int] = None
    s3: Optional[EtcdS3] = None


class ClusterSpec(BaseModel):
    """
    Desired state of one cluster. Owned externally, never mutated by the planner.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    namespace: str = "fleet-default"
    kubernetes_version: str                                  # e.g. v1.25.7+rke2r1
    machine_global_config: Dict[str, Any] = Field(default_factory=dict)
    machine_selector_config: List[RoleSelectorConfig] = Field(default_factory=list)
    etcd: Optional[EtcdConfig] = None


class MachineRecord(BaseModel):
    """
    One fleet member as last observed.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    os: str = ""                           # linux / windows / "" when unknown
    etcd: bool = False
    control_plane: bool = False
    worker: bool = False
    labels: Dict[str, str] = Field(default_factory=dict)
    observed_version: Optional[str] = None  # kubelet version reported by the node

    def has_role(self) -> bool:
        return self.etcd or self.control_plane or self.worker


class PlannerSettings(BaseModel):
    system_agent_image: str = "rancher/system-agent-installer-"
    max_minor_skew: Optional[int] = None    # None → no skew gating
    store_retries: int = 3
    store_retry_delay: float = 1.0
    store_dir: Optional[str] = None


class FleetConfig(BaseModel):
    cluster: ClusterSpec
    machines: List[MachineRecord] = Field(default_factory=list)
    settings: PlannerSettings = PlannerSettings()

    # Helper method
    def by_id(self) -> Dict[str, MachineRecord]:
        """
        Returns a dictionary mapping each machine id to its MachineRecord.
        """
        return {m.id: m for m in self.machines}
