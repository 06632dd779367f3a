# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import threading
from typing import Dict, Optional

from ..planner.models import NodePlan
from .base import PersistedPlanRecord, next_record


class InMemoryPlanStore:
    def __init__(self):
        self._records: Dict[str, PersistedPlanRecord] = {}
        self._lock = threading.Lock()

    def get(self, machine_id: str) -> Optional[PersistedPlanRecord]:
        with self._lock:
            return self._records.get(machine_id)

    def put(self, machine_id: str, plan: NodePlan) -> PersistedPlanRecord:
        with self._lock:
            record = next_record(machine_id, plan, self._records.get(machine_id))
            self._records[machine_id] = record
            return record

    def delete(self, machine_id: str) -> None:
        with self._lock:
            self._records.pop(machine_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
