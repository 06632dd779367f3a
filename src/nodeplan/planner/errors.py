# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodeplan/planner/errors.py
class PlanningError(RuntimeError):
    """Base class for planning failures."""


class InvalidVersionError(PlanningError, ValueError):
    """Raised when a distribution version string cannot be parsed."""


class ImageResolutionError(PlanningError):
    """Raised when the installer image cannot be resolved for a cluster."""


class PlanStoreError(PlanningError):
    """Raised when the plan store cannot read or write a record."""


class StoreUnavailableError(PlanStoreError):
    """Transient backing-store failure. Safe to retry."""
