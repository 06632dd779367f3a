# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodeplan/store/filesystem.py

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional

from ..planner.errors import PlanStoreError, StoreUnavailableError
from ..planner.models import NodePlan
from ..utils.naming import safe_concat_name, sanitize_name
from .base import PersistedPlanRecord, next_record
from .codec import compress_plan, decompress_plan

log = logging.getLogger("nodeplan")

MAX_NAME_LENGTH = 63


def record_name(machine_id: str) -> str:
    return safe_concat_name(MAX_NAME_LENGTH, sanitize_name(machine_id), "machine-plan")


class FilePlanStore:
    """
    One JSON record per machine under `root`.

    Records are written to a temporary file in the same directory and moved
    into place with os.replace, so readers see either the old or the new one.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, machine_id: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(machine_id, threading.Lock())

    def path_for(self, machine_id: str) -> Path:
        return self.root / f"{record_name(machine_id)}.json"

    def get(self, machine_id: str) -> Optional[PersistedPlanRecord]:
        path = self.path_for(machine_id)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreUnavailableError(f"Cannot read plan record {path}: {exc}") from exc

        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise PlanStoreError(f"Plan record {path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise PlanStoreError(f"Plan record {path} is not a JSON object")

        if data.get("machine_id") != machine_id:
            # two ids shortened to the same file name
            raise PlanStoreError(
                f"Plan record {path} belongs to '{data.get('machine_id')}', not '{machine_id}'"
            )

        try:
            revision = int(data.get("revision", 1))
        except (TypeError, ValueError) as exc:
            raise PlanStoreError(f"Plan record {path} has an invalid revision: {exc}") from exc

        plan = data.get("plan", "")
        if not isinstance(plan, str):
            raise PlanStoreError(f"Plan record {path} has no encoded plan")

        return PersistedPlanRecord(
            machine_id=machine_id,
            plan=decompress_plan(plan),
            revision=revision,
            stored_at=str(data.get("stored_at", "")),
        )

    def put(self, machine_id: str, plan: NodePlan) -> PersistedPlanRecord:
        with self._lock_for(machine_id):
            record = next_record(machine_id, plan, self.get(machine_id))
            body = {
                "machine_id": record.machine_id,
                "revision": record.revision,
                "stored_at": record.stored_at,
                "plan": compress_plan(record.plan),
            }
            self._write_atomic(self.path_for(machine_id), body)
            log.debug("Stored plan for %s revision=%d", machine_id, record.revision)
            return record

    def delete(self, machine_id: str) -> None:
        with self._lock_for(machine_id):
            try:
                self.path_for(machine_id).unlink()
            except FileNotFoundError:
                pass
            except OSError as exc:
                raise StoreUnavailableError(f"Cannot delete plan record for {machine_id}: {exc}") from exc

    def _write_atomic(self, path: Path, body: dict) -> None:
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", dir=self.root, prefix=".tmp-", suffix=".json", delete=False, encoding="utf-8"
            ) as tmp:
                tmp_path = tmp.name
                json.dump(body, tmp, indent=2, sort_keys=True)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_path, path)
        except OSError as exc:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StoreUnavailableError(f"Cannot write plan record {path}: {exc}") from exc
