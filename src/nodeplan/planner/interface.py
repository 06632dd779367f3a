# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodeplan/planner/interface.py

from __future__ import annotations
from typing import List, Protocol

from ..config.models import ClusterSpec, MachineRecord


class ClusterReader(Protocol):
    """Returns the current desired state of a cluster."""

    def get_cluster(self, name: str) -> ClusterSpec:
        ...


class MachineReader(Protocol):
    """Returns the machines currently known for a cluster."""

    def list_machines(self, cluster_name: str) -> List[MachineRecord]:
        ...
