# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodeplan/planner/planner.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from ..config.models import ClusterSpec, MachineRecord, PlannerSettings
from ..observers.dispatcher import EventBus
from ..observers.events import (
    MachinePlanFailed,
    MachinePlanHeld,
    MachinePlanStored,
    PlanComputed,
    PlanFailed,
    new_ctx,
)
from ..store.base import PersistedPlanRecord, PlanStore, plans_equal
from ..utils.retry import RetryError, retry
from .errors import InvalidVersionError, PlanningError, PlanStoreError, StoreUnavailableError
from .images import ImageNamer, default_image_namer
from .instructions import build_install_instruction
from .interface import ClusterReader, MachineReader
from .models import NodePlan, PlanEntry, new_plan_entry
from .predicates import any_role
from .render import render_config_file, render_machine_config, render_probes
from .snapshot import S3SnapshotArgs, SnapshotArgsProvider
from .versions import (
    DistributionVersion,
    lowest_observed_version,
    observed_version,
    parse_version,
    runtime_for,
)

log = logging.getLogger("nodeplan")

CHANGED = "CHANGED"
UNCHANGED = "UNCHANGED"
HELD = "HELD"
FAILED = "FAILED"
SKIPPED = "SKIPPED"

# (floor version, desired version, entry) -> may this machine advance?
SkewPolicy = Callable[[Optional[DistributionVersion], DistributionVersion, PlanEntry], bool]


def allow_all(floor: Optional[DistributionVersion], desired: DistributionVersion, entry: PlanEntry) -> bool:
    return True


def minor_skew_policy(max_minor: int) -> SkewPolicy:
    """
    Deny advancing more than `max_minor` minor releases past the fleet floor.

    The floor machine itself is gated too, so a desired version out of reach
    of the floor holds every lagging machine on every pass until the cluster
    is pointed at an intermediate version.
    """
    def _policy(floor, desired, entry) -> bool:
        if floor is None:
            return True
        if desired.major != floor.major:
            return False
        return desired.minor - floor.minor <= max_minor
    return _policy


@dataclass
class MachinePlanOutcome:
    machine_id: str
    status: str                     # CHANGED / UNCHANGED / HELD / FAILED / SKIPPED
    plan: Optional[NodePlan] = None
    revision: Optional[int] = None
    error: Optional[str] = None


@dataclass
class ClusterPlanResult:
    cluster: str
    desired_version: str
    runtime: str
    floor_version: Optional[str] = None
    outcomes: Dict[str, MachinePlanOutcome] = field(default_factory=dict)

    def with_status(self, status: str) -> List[str]:
        return [mid for mid, o in self.outcomes.items() if o.status == status]

    @property
    def changed(self) -> bool:
        return bool(self.with_status(CHANGED))

    def summary(self) -> str:
        return " ".join(
            f"{s}={len(self.with_status(s))}" for s in (CHANGED, UNCHANGED, HELD, FAILED, SKIPPED)
        )


class Planner:
    """
    Computes one NodePlan per machine of a cluster and persists the plans
    that changed since the previous pass.

    A pass either completes for the whole cluster or raises, in which case
    nothing written during the pass is kept.
    """

    def __init__(
        self,
        store: PlanStore,
        *,
        settings: Optional[PlannerSettings] = None,
        image_namer: Optional[ImageNamer] = None,
        snapshot_args: Optional[SnapshotArgsProvider] = None,
        skew_policy: Optional[SkewPolicy] = None,
        bus: Optional[EventBus] = None,
    ):
        self.store = store
        self.settings = settings or PlannerSettings()
        self.image_namer = image_namer or default_image_namer(self.settings)
        self.snapshot_args = snapshot_args or S3SnapshotArgs()
        if skew_policy is None:
            if self.settings.max_minor_skew is not None:
                skew_policy = minor_skew_policy(self.settings.max_minor_skew)
            else:
                skew_policy = allow_all
        self.skew_policy = skew_policy
        self.bus = bus or EventBus()

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def reconcile(
        self,
        cluster_name: str,
        clusters: ClusterReader,
        machines: MachineReader,
    ) -> ClusterPlanResult:
        cluster = clusters.get_cluster(cluster_name)
        return self.compute(cluster, machines.list_machines(cluster_name))

    def compute(self, cluster: ClusterSpec, machines: Sequence[MachineRecord]) -> ClusterPlanResult:
        ctx = new_ctx(cluster.name, cluster.namespace)

        try:
            desired = parse_version(cluster.kubernetes_version)
            runtime = runtime_for(desired)
        except InvalidVersionError as exc:
            log.error("Cluster %s/%s: %s", cluster.namespace, cluster.name, exc)
            self.bus.emit(PlanFailed(error=str(exc), **ctx))
            raise

        result = ClusterPlanResult(
            cluster=cluster.name,
            desired_version=str(desired),
            runtime=runtime,
        )
        outcomes = result.outcomes
        snapshot = sorted(machines, key=lambda m: m.id)

        observed: Dict[str, Optional[DistributionVersion]] = {}
        for machine in snapshot:
            try:
                observed[machine.id] = observed_version(machine)
            except InvalidVersionError as exc:
                outcomes[machine.id] = self._failed(machine.id, exc, ctx)

        healthy = [m for m in snapshot if m.id in observed]
        floor = lowest_observed_version(healthy)
        result.floor_version = str(floor) if floor is not None else None
        log.info(
            "Planning %s/%s desired=%s runtime=%s floor=%s machines=%d",
            cluster.namespace, cluster.name, desired, runtime, result.floor_version, len(snapshot),
        )

        pending: Dict[str, NodePlan] = {}
        for machine in healthy:
            entry = new_plan_entry(machine)
            if not any_role(entry):
                log.info("Machine %s has no roles, skipping", machine.id)
                outcomes[machine.id] = MachinePlanOutcome(machine.id, SKIPPED)
                continue

            current = observed[machine.id]
            advancing = current is None or current < desired
            if advancing and not self.skew_policy(floor, desired, entry):
                reason = (
                    f"advancing to {desired} is not allowed while the fleet floor is {floor}; "
                    f"an intermediate version is required"
                )
                log.info("Machine %s held: %s", machine.id, reason)
                outcomes[machine.id] = MachinePlanOutcome(machine.id, HELD, error=reason)
                self.bus.emit(MachinePlanHeld(machine=machine.id, reason=reason, **ctx))
                continue

            try:
                pending[machine.id] = self.build_node_plan(cluster, entry, runtime)
            except PlanningError as exc:
                outcomes[machine.id] = self._failed(machine.id, exc, ctx)

        try:
            self._store_changed(pending, outcomes, ctx)
        except Exception as exc:
            log.error("Cluster %s/%s: plan store failure: %s", cluster.namespace, cluster.name, exc)
            self.bus.emit(PlanFailed(error=str(exc), **ctx))
            raise

        result.outcomes = {mid: outcomes[mid] for mid in sorted(outcomes)}
        log.info("Planned %s/%s: %s", cluster.namespace, cluster.name, result.summary())
        self.bus.emit(
            PlanComputed(
                floor_version=result.floor_version,
                changed=result.with_status(CHANGED),
                unchanged=result.with_status(UNCHANGED),
                held=result.with_status(HELD),
                failed=result.with_status(FAILED),
                skipped=result.with_status(SKIPPED),
                **ctx,
            )
        )
        return result

    def build_node_plan(
        self,
        cluster: ClusterSpec,
        entry: PlanEntry,
        runtime: str,
    ) -> NodePlan:
        config = render_machine_config(cluster, entry, runtime, self.snapshot_args)
        plan = NodePlan(
            files=[render_config_file(config, entry, runtime)],
            probes=render_probes(entry, runtime, config),
        )
        return build_install_instruction(plan, cluster, entry, self.image_namer)

    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------

    def _store_changed(self, pending: Dict[str, NodePlan], outcomes: Dict[str, MachinePlanOutcome], ctx: dict) -> None:
        previous: Dict[str, Optional[PersistedPlanRecord]] = {}
        to_write: Dict[str, NodePlan] = {}
        for mid, plan in pending.items():
            prior = self._call_store(self.store.get, mid)
            previous[mid] = prior
            if prior is not None and plans_equal(prior.plan, plan):
                outcomes[mid] = MachinePlanOutcome(mid, UNCHANGED, plan=plan, revision=prior.revision)
            else:
                to_write[mid] = plan

        written: List[str] = []
        stored: Dict[str, PersistedPlanRecord] = {}
        try:
            for mid, plan in to_write.items():
                stored[mid] = self._call_store(self.store.put, mid, plan)
                written.append(mid)
        except Exception:
            self._rollback(written, previous)
            raise

        for mid, record in stored.items():
            outcomes[mid] = MachinePlanOutcome(mid, CHANGED, plan=record.plan, revision=record.revision)
            self.bus.emit(
                MachinePlanStored(
                    machine=mid,
                    revision=record.revision,
                    restart_stamp=record.plan.restart_stamp,
                    **ctx,
                )
            )

    def _rollback(self, written: List[str], previous: Dict[str, Optional[PersistedPlanRecord]]) -> None:
        for mid in reversed(written):
            prior = previous.get(mid)
            try:
                if prior is None:
                    self._call_store(self.store.delete, mid)
                else:
                    self._call_store(self.store.put, mid, prior.plan)
            except Exception:
                log.error("Could not restore previous plan for %s", mid, exc_info=True)

    def _call_store(self, fn, *args):
        def _warn(attempt: int, exc: Exception) -> None:
            log.warning("Plan store call %s failed (attempt %d): %s", fn.__name__, attempt, exc)

        wrapped = retry(
            retries=self.settings.store_retries,
            delay=self.settings.store_retry_delay,
            retry_on=(StoreUnavailableError,),
            on_retry=_warn,
        )(fn)
        try:
            return wrapped(*args)
        except RetryError as exc:
            raise PlanStoreError(f"{exc}: {exc.__cause__}") from exc

    def _failed(self, machine_id: str, exc: Exception, ctx: dict) -> MachinePlanOutcome:
        log.error("Machine %s: %s", machine_id, exc)
        self.bus.emit(MachinePlanFailed(machine=machine_id, error=str(exc), **ctx))
        return MachinePlanOutcome(machine_id, FAILED, error=str(exc))
