# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodeplan/planner/render.py

from __future__ import annotations

import copy
import posixpath
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import yaml

from ..config.models import ClusterSpec
from .models import RUNTIME_K3S, PlanEntry, PlanFile, Probe
from .predicates import (
    any_role_excluding_windows,
    is_control_plane,
    is_etcd,
    is_only_worker,
    windows,
)
from .snapshot import SnapshotArgsProvider

CERT_DIR_ARGUMENT = "cert-dir"
TLS_CERT_FILE_ARGUMENT = "tls-cert-file"
SECURE_PORT_ARGUMENT = "secure-port"

DEFAULT_KUBE_CONTROLLER_MANAGER_SECURE_PORT = "10257"
DEFAULT_KUBE_CONTROLLER_MANAGER_CERT_DIR = "/var/lib/rancher/{runtime}/server/tls/kube-controller-manager"
DEFAULT_KUBE_SCHEDULER_SECURE_PORT = "10259"
DEFAULT_KUBE_SCHEDULER_CERT_DIR = "/var/lib/rancher/{runtime}/server/tls/kube-scheduler"

CONFIG_FILE = "/etc/rancher/{runtime}/config.yaml.d/50-rancher.yaml"
WINDOWS_CONFIG_FILE = "c:/etc/rancher/{runtime}/config.yaml.d/50-rancher.yaml"

# keys a worker-only (agent) machine must not receive
SERVER_ONLY_KEYS = (
    "kube-apiserver",
    "kube-controller-manager",
    "kube-scheduler",
    "etcd",
    "cluster-cidr",
    "service-cidr",
    "tls-san",
)


@dataclass(frozen=True)
class ControlPlaneComponent:
    name: str
    secure_port: str
    cert_dir_template: str

    @property
    def arg_key(self) -> str:
        return f"{self.name}-arg"

    @property
    def mount_key(self) -> str:
        return f"{self.name}-extra-mount"


KUBE_CONTROLLER_MANAGER = ControlPlaneComponent(
    name="kube-controller-manager",
    secure_port=DEFAULT_KUBE_CONTROLLER_MANAGER_SECURE_PORT,
    cert_dir_template=DEFAULT_KUBE_CONTROLLER_MANAGER_CERT_DIR,
)
KUBE_SCHEDULER = ControlPlaneComponent(
    name="kube-scheduler",
    secure_port=DEFAULT_KUBE_SCHEDULER_SECURE_PORT,
    cert_dir_template=DEFAULT_KUBE_SCHEDULER_CERT_DIR,
)
CONTROL_PLANE_COMPONENTS = (KUBE_CONTROLLER_MANAGER, KUBE_SCHEDULER)


# ------------------------------------------------------------------------------
# Argument helpers
# ------------------------------------------------------------------------------

def to_string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def get_arg_value(args: List[str], key: str) -> str:
    """Value of the last non-empty `key=value` entry, "" when there is none."""
    value = ""
    prefix = f"{key}="
    for arg in args:
        if arg.startswith(prefix) and arg[len(prefix):]:
            value = arg[len(prefix):]
    return value


def has_argument(args: List[str], key: str) -> bool:
    return get_arg_value(args, key) != ""


def render_component_args_and_mounts(
    existing_args: Any,
    existing_mounts: Any,
    runtime: str,
    default_secure_port: str,
    default_cert_dir_template: str,
) -> Tuple[List[str], List[str]]:
    """
    Render a control-plane component's arguments and host mounts.

    Unrecognised entries in `existing_args` are kept verbatim and in order.
    A default cert-dir is appended unless the user supplied cert-dir or
    tls-cert-file; secure-port is always appended last.

    K3s components run as host processes and never get mounts. RKE2
    components get exactly one mount for the directory holding their certs.
    """
    args = to_string_list(existing_args)
    default_cert_dir = default_cert_dir_template.format(runtime=runtime)

    if not has_argument(args, CERT_DIR_ARGUMENT) and not has_argument(args, TLS_CERT_FILE_ARGUMENT):
        args.append(f"{CERT_DIR_ARGUMENT}={default_cert_dir}")

    mounts: List[str] = []
    if runtime != RUNTIME_K3S:
        mounts = to_string_list(existing_mounts)
        tls_cert_file = get_arg_value(args, TLS_CERT_FILE_ARGUMENT)
        if tls_cert_file:
            # "/crt" and "crt" both map the root directory
            cert_dir = posixpath.dirname(tls_cert_file) or "/"
        else:
            cert_dir = get_arg_value(args, CERT_DIR_ARGUMENT) or default_cert_dir
        mounts.append(f"{cert_dir}:{cert_dir}")

    args.append(f"{SECURE_PORT_ARGUMENT}={default_secure_port}")
    return args, mounts


# ------------------------------------------------------------------------------
# Machine config
# ------------------------------------------------------------------------------

def _is_server_only(key: str) -> bool:
    return any(key == k or key.startswith(f"{k}-") for k in SERVER_ONLY_KEYS)


def render_machine_config(
    cluster: ClusterSpec,
    entry: PlanEntry,
    runtime: str,
    snapshot_args: Optional[SnapshotArgsProvider] = None,
) -> Dict[str, Any]:
    """
    Merge global and matching selector config for one machine, then add the
    role specific settings.
    """
    config: Dict[str, Any] = copy.deepcopy(cluster.machine_global_config)
    for selector in cluster.machine_selector_config:
        if selector.matches(entry.labels):
            config.update(copy.deepcopy(selector.config))

    if is_control_plane(entry):
        for component in CONTROL_PLANE_COMPONENTS:
            args, mounts = render_component_args_and_mounts(
                config.get(component.arg_key),
                config.get(component.mount_key),
                runtime,
                component.secure_port,
                component.cert_dir_template,
            )
            config[component.arg_key] = args
            if mounts:
                config[component.mount_key] = mounts
            else:
                config.pop(component.mount_key, None)

    if is_etcd(entry) and cluster.etcd is not None:
        etcd = cluster.etcd
        if etcd.disable_snapshots:
            config["etcd-disable-snapshots"] = True
        else:
            if etcd.snapshot_schedule_cron:
                config["etcd-snapshot-schedule-cron"] = etcd.snapshot_schedule_cron
            if etcd.snapshot_retention is not None:
                config["etcd-snapshot-retention"] = etcd.snapshot_retention
            if etcd.s3 is not None and snapshot_args is not None:
                config.update(snapshot_args.args_for(cluster, etcd.s3))

    if is_only_worker(entry):
        config = {k: v for k, v in config.items() if not _is_server_only(k)}

    return config


def render_config_file(config: Dict[str, Any], entry: PlanEntry, runtime: str) -> PlanFile:
    template = WINDOWS_CONFIG_FILE if windows(entry) else CONFIG_FILE
    content = yaml.safe_dump(config, sort_keys=True, default_flow_style=False)
    return PlanFile(path=template.format(runtime=runtime), content=content)


# ------------------------------------------------------------------------------
# Probes
# ------------------------------------------------------------------------------

def _component_probe(component: ControlPlaneComponent, config: Dict[str, Any], runtime: str) -> Probe:
    args = to_string_list(config.get(component.arg_key))
    port = get_arg_value(args, SECURE_PORT_ARGUMENT) or component.secure_port
    tls_cert_file = get_arg_value(args, TLS_CERT_FILE_ARGUMENT)
    if tls_cert_file:
        ca_cert = tls_cert_file
    else:
        cert_dir = get_arg_value(args, CERT_DIR_ARGUMENT) or component.cert_dir_template.format(runtime=runtime)
        ca_cert = f"{cert_dir}/{component.name}.crt"
    return Probe(url=f"https://127.0.0.1:{port}/healthz", ca_cert=ca_cert)


def render_probes(entry: PlanEntry, runtime: str, config: Dict[str, Any]) -> Dict[str, Probe]:
    if not any_role_excluding_windows(entry):
        return {}

    probes: Dict[str, Probe] = {
        "kubelet": Probe(url="http://127.0.0.1:10248/healthz"),
    }
    if is_etcd(entry):
        probes["etcd"] = Probe(url="http://127.0.0.1:2381/health")
    if is_control_plane(entry):
        tls = f"/var/lib/rancher/{runtime}/server/tls"
        probes["kube-apiserver"] = Probe(
            url="https://127.0.0.1:6443/readyz",
            ca_cert=f"{tls}/server-ca.crt",
            client_cert=f"{tls}/client-kube-apiserver.crt",
            client_key=f"{tls}/client-kube-apiserver.key",
        )
        for component in CONTROL_PLANE_COMPONENTS:
            probes[component.name] = _component_probe(component, config, runtime)
    return probes
