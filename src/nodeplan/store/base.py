# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodeplan/store/base.py

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Protocol

from pydantic import BaseModel, ConfigDict

from ..planner.models import NodePlan


class PersistedPlanRecord(BaseModel):
    """Last plan computed for a machine."""
    model_config = ConfigDict(frozen=True)

    machine_id: str
    plan: NodePlan
    revision: int = 1
    stored_at: str = ""


class PlanStore(Protocol):
    """
    Keyed by machine id. `put` replaces the whole record; readers never
    observe a partially written one.
    """

    def get(self, machine_id: str) -> Optional[PersistedPlanRecord]:
        ...

    def put(self, machine_id: str, plan: NodePlan) -> PersistedPlanRecord:
        ...

    def delete(self, machine_id: str) -> None:
        ...


def plans_equal(a: Optional[NodePlan], b: Optional[NodePlan]) -> bool:
    """
    Element-wise comparison of the ordered instruction lists (command, image,
    args, env and mounts, all order sensitive).

    This is stricter than instruction equality on purpose: files, probes and
    the restart stamp are compared too. A Linux config-only change rewrites
    files without touching the install instruction, and it still has to
    reach the machine.
    """
    if a is None or b is None:
        return a is b
    if len(a.instructions) != len(b.instructions):
        return False
    for x, y in zip(a.instructions, b.instructions):
        if (x.name, x.command, x.image) != (y.name, y.command, y.image):
            return False
        if list(x.args) != list(y.args) or list(x.env) != list(y.env) or list(x.mounts) != list(y.mounts):
            return False
    return a.files == b.files and a.probes == b.probes and a.restart_stamp == b.restart_stamp


def next_record(machine_id: str, plan: NodePlan, previous: Optional[PersistedPlanRecord]) -> PersistedPlanRecord:
    return PersistedPlanRecord(
        machine_id=machine_id,
        plan=plan,
        revision=(previous.revision + 1) if previous else 1,
        stored_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
    )
