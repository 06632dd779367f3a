# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodeplan/planner/snapshot.py

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Protocol, Tuple

from ..config.models import ClusterSpec, EtcdS3
from .errors import PlanningError

# (namespace, credential name) -> (access key, secret key)
CredentialLookup = Callable[[str, str], Tuple[str, str]]


class SnapshotArgsProvider(Protocol):
    """
    Supplies the config arguments that address a remote snapshot target.
    The planner merges the result into etcd machine configs as-is.
    """

    def args_for(self, cluster: ClusterSpec, s3: EtcdS3) -> Dict[str, Any]:
        ...


class S3SnapshotArgs:
    def __init__(self, credentials: Optional[CredentialLookup] = None):
        self.credentials = credentials

    def args_for(self, cluster: ClusterSpec, s3: EtcdS3) -> Dict[str, Any]:
        args: Dict[str, Any] = {"etcd-s3": True}
        if s3.bucket:
            args["etcd-s3-bucket"] = s3.bucket
        if s3.endpoint:
            args["etcd-s3-endpoint"] = s3.endpoint
        if s3.endpoint_ca:
            args["etcd-s3-endpoint-ca"] = s3.endpoint_ca
        if s3.region:
            args["etcd-s3-region"] = s3.region
        if s3.folder:
            args["etcd-s3-folder"] = s3.folder
        if s3.skip_ssl_verify:
            args["etcd-s3-skip-ssl-verify"] = True

        if s3.cloud_credential_name:
            if self.credentials is None:
                raise PlanningError(
                    f"Cluster '{cluster.name}' references cloud credential "
                    f"'{s3.cloud_credential_name}' but no credential lookup is configured"
                )
            try:
                access_key, secret_key = self.credentials(cluster.namespace, s3.cloud_credential_name)
            except Exception as exc:
                raise PlanningError(
                    f"Credential lookup for '{cluster.namespace}/{s3.cloud_credential_name}' failed: {exc!r}"
                ) from exc
            args["etcd-s3-access-key"] = access_key
            args["etcd-s3-secret-key"] = secret_key
        return args
