# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodeplan/planner/images.py

"""
Installer image resolution for a cluster.
"""

from __future__ import annotations

from typing import Callable

from ..config.models import ClusterSpec, PlannerSettings
from .errors import ImageResolutionError
from .versions import image_tag, runtime_for

SYSTEM_DEFAULT_REGISTRY = "system-default-registry"

ImageNamer = Callable[[str], str]


def default_image_namer(settings: PlannerSettings | None = None) -> ImageNamer:
    base = (settings or PlannerSettings()).system_agent_image

    def _namer(runtime: str) -> str:
        return f"{base}{runtime}"

    return _namer


def registry_prefix(cluster: ClusterSpec) -> str:
    """
    Private registry for system images.

    The machine global config wins over the selector config for this value;
    only the first selector entry is consulted.
    """
    registry = cluster.machine_global_config.get(SYSTEM_DEFAULT_REGISTRY)
    if registry:
        return str(registry).rstrip("/")
    if cluster.machine_selector_config:
        registry = cluster.machine_selector_config[0].config.get(SYSTEM_DEFAULT_REGISTRY)
        if registry:
            return str(registry).rstrip("/")
    return ""


def resolve_installer_image(cluster: ClusterSpec, image_namer: ImageNamer) -> str:
    runtime = runtime_for(cluster.kubernetes_version)
    try:
        name = image_namer(runtime)
    except Exception as exc:
        raise ImageResolutionError(f"Image naming failed for runtime '{runtime}': {exc}") from exc
    if not name:
        raise ImageResolutionError(f"No installer image configured for runtime '{runtime}'")

    image = f"{name}:{image_tag(cluster.kubernetes_version)}"
    prefix = registry_prefix(cluster)
    return f"{prefix}/{image}" if prefix else image
