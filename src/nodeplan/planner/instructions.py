# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodeplan/planner/instructions.py

from __future__ import annotations

import hashlib
import json

from ..config.models import ClusterSpec
from .images import ImageNamer, resolve_installer_image
from .models import LINUX, OS_LABEL, WINDOWS, Instruction, NodePlan, PlanEntry, resolve_os
from .predicates import is_only_worker
from .versions import runtime_for

RESTART_STAMP_ENV = "RESTART_STAMP"


def _is_restart_stamp(env: str) -> bool:
    return env.startswith(f"{RESTART_STAMP_ENV}=") or env.startswith(f"$env:{RESTART_STAMP_ENV}=")


def restart_stamp(plan: NodePlan) -> str:
    """
    sha256 over the files and ordered instructions of a plan. RESTART_STAMP
    entries are left out so the stamp can be embedded in the plan it describes.
    """
    instructions = []
    for ins in plan.instructions:
        body = ins.model_dump()
        body["env"] = [e for e in ins.env if not _is_restart_stamp(e)]
        instructions.append(body)

    payload = {
        "files": [f.model_dump() for f in plan.files],
        "instructions": instructions,
    }
    data = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def install_exec_env(runtime: str) -> str:
    return f"INSTALL_{runtime.upper()}_EXEC"


def build_install_instruction(
    existing_plan: NodePlan,
    cluster: ClusterSpec,
    entry: PlanEntry,
    image_namer: ImageNamer,
) -> NodePlan:
    """
    Append the installer instruction to `existing_plan` and return the new plan.

    Windows machines run run.ps1 through powershell and get the restart stamp
    ahead of the exec variable; everything else runs run.sh through sh.
    """
    os_name = resolve_os(entry.machine) if entry.machine.os else _label_os(entry)
    entry.labels[OS_LABEL] = os_name

    runtime = runtime_for(cluster.kubernetes_version)
    image = resolve_installer_image(cluster, image_namer)
    exec_env = install_exec_env(runtime)
    command = "agent" if is_only_worker(entry) else "server"

    if os_name == WINDOWS:
        instruction = Instruction(
            name="install",
            image=image,
            command="powershell.exe",
            args=["-File", "run.ps1"],
            env=[f"$env:{exec_env}={command}"],
        )
    else:
        instruction = Instruction(
            name="install",
            image=image,
            command="sh",
            args=["-c", "run.sh"],
            env=[f"{exec_env}={command}"],
        )

    plan = existing_plan.model_copy(
        update={"instructions": [*existing_plan.instructions, instruction]}
    )
    stamp = restart_stamp(plan)

    if os_name == WINDOWS:
        instruction = instruction.model_copy(
            update={"env": [f"$env:{RESTART_STAMP_ENV}={stamp}", *instruction.env]}
        )
        plan = existing_plan.model_copy(
            update={"instructions": [*existing_plan.instructions, instruction]}
        )

    return plan.model_copy(update={"restart_stamp": stamp})


def _label_os(entry: PlanEntry) -> str:
    return WINDOWS if entry.labels.get(OS_LABEL, "").strip().lower() == WINDOWS else LINUX
