# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodeplan/planner/predicates.py
"""
Role and OS predicates over a PlanEntry.

A predicate is any callable taking a PlanEntry and returning a bool.
Combinators build new predicates out of existing ones.
"""

from __future__ import annotations

from typing import Callable

from .models import (
    CONTROL_PLANE_ROLE_LABEL,
    ETCD_ROLE_LABEL,
    OS_LABEL,
    WINDOWS,
    WORKER_ROLE_LABEL,
    PlanEntry,
)

Predicate = Callable[[PlanEntry], bool]

_TRUTHY = {"true", "1", "yes"}


def _label_true(entry: PlanEntry, label: str) -> bool:
    value = (entry.labels or {}).get(label)
    return value is not None and str(value).strip().lower() in _TRUTHY


def windows(entry: PlanEntry) -> bool:
    return (entry.labels or {}).get(OS_LABEL) == WINDOWS


def is_etcd(entry: PlanEntry) -> bool:
    return _label_true(entry, ETCD_ROLE_LABEL)


def is_control_plane(entry: PlanEntry) -> bool:
    return _label_true(entry, CONTROL_PLANE_ROLE_LABEL)


def is_worker(entry: PlanEntry) -> bool:
    return _label_true(entry, WORKER_ROLE_LABEL)


def role_not(pred: Predicate) -> Predicate:
    def _not(entry: PlanEntry) -> bool:
        return not pred(entry)
    return _not


def role_or(*preds: Predicate) -> Predicate:
    def _or(entry: PlanEntry) -> bool:
        return any(p(entry) for p in preds)
    return _or


def role_and(*preds: Predicate) -> Predicate:
    def _and(entry: PlanEntry) -> bool:
        return all(p(entry) for p in preds)
    return _and


any_role = role_or(is_etcd, is_control_plane, is_worker)
is_server = role_or(is_etcd, is_control_plane)
is_only_worker = role_and(is_worker, role_not(is_server))


def any_role_excluding_windows(entry: PlanEntry) -> bool:
    return not windows(entry) and any_role(entry)
