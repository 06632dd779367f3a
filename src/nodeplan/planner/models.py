# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodeplan/planner/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..config.models import MachineRecord

OS_LABEL = "cattle.io/os"
ETCD_ROLE_LABEL = "rke.cattle.io/etcd-role"
CONTROL_PLANE_ROLE_LABEL = "rke.cattle.io/control-plane-role"
WORKER_ROLE_LABEL = "rke.cattle.io/worker-role"

WINDOWS = "windows"
LINUX = "linux"

RUNTIME_RKE2 = "rke2"
RUNTIME_K3S = "k3s"


class Instruction(BaseModel):
    """
    One unit of work for the remote agent. Order inside a plan matters.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    command: str
    image: str
    args: List[str] = Field(default_factory=list)
    env: List[str] = Field(default_factory=list)     # NAME=value, Windows uses $env:NAME=value
    mounts: List[str] = Field(default_factory=list)  # host:container


class PlanFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    content: str
    permissions: str = "0600"


class Probe(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    ca_cert: Optional[str] = None
    client_cert: Optional[str] = None
    client_key: Optional[str] = None
    success_threshold: int = 1
    failure_threshold: int = 2


class NodePlan(BaseModel):
    """
    Everything delivered to one machine for a single planning pass.
    A new pass produces a new NodePlan; existing ones are never changed.
    """
    model_config = ConfigDict(frozen=True)

    instructions: List[Instruction] = Field(default_factory=list)
    files: List[PlanFile] = Field(default_factory=list)
    probes: Dict[str, Probe] = Field(default_factory=dict)
    restart_stamp: str = ""


@dataclass
class PlanEntry:
    """
    Working view of a machine for one planning pass.
    """
    machine: MachineRecord
    labels: Dict[str, str] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.machine.id


def resolve_os(machine: MachineRecord) -> str:
    """Anything that is not windows is planned as linux."""
    return WINDOWS if (machine.os or "").strip().lower() == WINDOWS else LINUX


def new_plan_entry(machine: MachineRecord) -> PlanEntry:
    labels: Dict[str, str] = dict(machine.labels)
    labels[OS_LABEL] = resolve_os(machine)
    labels[ETCD_ROLE_LABEL] = _flag(machine.etcd)
    labels[CONTROL_PLANE_ROLE_LABEL] = _flag(machine.control_plane)
    labels[WORKER_ROLE_LABEL] = _flag(machine.worker)
    return PlanEntry(machine=machine, labels=labels)


def _flag(value: bool) -> str:
    return "true" if value else "false"
