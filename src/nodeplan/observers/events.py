# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodeplan/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict, field
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str                 # ISO timestamp
    run_id: str             # correlates all events in a single planning pass
    cluster: str
    namespace: Optional[str]

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(cluster: str, namespace: Optional[str], run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id or str(uuid.uuid4()),
        "cluster": cluster,
        "namespace": namespace,
    }


# ---------------------------------------------------------------------
# Planning pass
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class PlanComputed(BaseEvent):
    floor_version: Optional[str]
    changed: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    held: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PlanFailed(BaseEvent):
    error: str


# ---------------------------------------------------------------------
# Per machine
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class MachinePlanStored(BaseEvent):
    machine: str
    revision: int
    restart_stamp: str


@dataclass(frozen=True)
class MachinePlanHeld(BaseEvent):
    machine: str
    reason: str


@dataclass(frozen=True)
class MachinePlanFailed(BaseEvent):
    machine: str
    error: str
