# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

import base64
import gzip

from ..planner.errors import PlanStoreError
from ..planner.models import NodePlan


def compress_plan(plan: NodePlan) -> str:
    """JSON -> gzip -> base64 text."""
    raw = plan.model_dump_json().encode("utf-8")
    return base64.b64encode(gzip.compress(raw, mtime=0)).decode("ascii")


def decompress_plan(data: str) -> NodePlan:
    try:
        raw = gzip.decompress(base64.b64decode(data.encode("ascii"), validate=True))
    except (ValueError, OSError, EOFError) as exc:
        raise PlanStoreError(f"Stored plan is not valid compressed data: {exc}") from exc
    try:
        return NodePlan.model_validate_json(raw)
    except ValueError as exc:
        raise PlanStoreError(f"Stored plan does not decode to a NodePlan: {exc}") from exc
