# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodeplan/planner/versions.py

from __future__ import annotations

import functools
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple, Union

from ..config.models import MachineRecord
from .errors import InvalidVersionError
from .models import RUNTIME_K3S, RUNTIME_RKE2

_VERSION_RE = re.compile(
    r"^v?(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class DistributionVersion:
    """
    A parsed <core>[-<prerelease>][+<build>] version such as v1.25.7+rke2r1.

    Ordering is semver precedence on core and prerelease; the build tag only
    breaks ties, lexicographically.
    """
    major: int
    minor: int
    patch: int
    prerelease: Tuple[str, ...]
    build: str
    raw: str

    def _key(self):
        return (
            self.major,
            self.minor,
            self.patch,
            0 if self.prerelease else 1,
            tuple(_prerelease_key(p) for p in self.prerelease),
            self.build,
        )

    def __eq__(self, other):
        if not isinstance(other, DistributionVersion):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other):
        if not isinstance(other, DistributionVersion):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self):
        return hash(self._key())

    def __str__(self) -> str:
        return self.raw


def _prerelease_key(ident: str):
    # numeric identifiers rank below alphanumeric ones
    if ident.isdigit():
        return (0, int(ident), "")
    return (1, 0, ident)


def parse_version(text: Union[str, DistributionVersion, None]) -> DistributionVersion:
    if isinstance(text, DistributionVersion):
        return text
    raw = (text or "").strip()
    m = _VERSION_RE.match(raw)
    if not m:
        raise InvalidVersionError(f"Invalid distribution version '{text}'")
    pre = m.group("prerelease")
    return DistributionVersion(
        major=int(m.group("major")),
        minor=int(m.group("minor")),
        patch=int(m.group("patch")),
        prerelease=tuple(pre.split(".")) if pre else (),
        build=m.group("build") or "",
        raw=raw,
    )


def image_tag(version: Union[str, DistributionVersion]) -> str:
    """Image tags may not contain '+', so the build separator becomes '-'."""
    return str(parse_version(version)).replace("+", "-")


def runtime_for(version: Union[str, DistributionVersion]) -> str:
    build = parse_version(version).build
    if RUNTIME_K3S in build:
        return RUNTIME_K3S
    if RUNTIME_RKE2 in build:
        return RUNTIME_RKE2
    raise InvalidVersionError(
        f"Cannot determine runtime from version '{version}': build tag must name rke2 or k3s"
    )


def observed_version(machine: MachineRecord) -> Optional[DistributionVersion]:
    """Parsed observed version of a machine, None when it has not reported one."""
    if not machine.observed_version:
        return None
    try:
        return parse_version(machine.observed_version)
    except InvalidVersionError as exc:
        raise InvalidVersionError(
            f"Machine '{machine.id}' reports an invalid version: {exc}"
        ) from exc


def lowest_observed_version(machines: Iterable[MachineRecord]) -> Optional[DistributionVersion]:
    """
    Fleet floor version: the minimum observed version across all machines
    that reported one. None when no machine has reported a version.
    """
    versions = [v for v in (observed_version(m) for m in machines) if v is not None]
    if not versions:
        return None
    return min(versions)
