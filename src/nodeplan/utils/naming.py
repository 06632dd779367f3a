# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

import hashlib
import re

_HASH_LENGTH = 6
_INVALID = re.compile(r"[^a-z0-9.-]+")


def safe_concat_name(max_length: int, *names: str) -> str:
    """
    Join names with '-' and shorten the result to max_length.

    Long names keep a prefix and end in a short sha256 suffix so distinct
    inputs stay distinct. Below the hash length the name is only truncated.
    """
    full = "-".join(names)
    if len(full) <= max_length:
        return full
    if max_length < _HASH_LENGTH:
        return full[:max_length]

    digest = hashlib.sha256(full.encode("utf-8")).hexdigest()
    cut = max_length - _HASH_LENGTH
    c = full[cut]
    if c.isascii() and (c.islower() or c.isdigit()):
        out = full[:cut] + "-" + digest[:_HASH_LENGTH - 1]
    else:
        cut = max(cut - 1, 0)
        out = full[:cut] + "-" + digest[:_HASH_LENGTH]
    return out.lstrip("-")


def sanitize_name(name: str) -> str:
    """Lowercase and replace anything that is not valid in a resource name."""
    return _INVALID.sub("-", name.lower()).strip("-.")
