# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

#src/nodeplan/logging/log.py

from __future__ import annotations

import logging
from pathlib import Path
from datetime import datetime, timezone
from typing import Mapping, Optional
import uuid

from ..utils.naming import sanitize_name


def init_logging(
    *,
    base_dir: Path | None = None,
    name: str = "nodeplan",
    cluster: Optional[str] = None,
    context: Optional[Mapping[str, object]] = None,
    verbose: bool = False,
) -> tuple[logging.Logger, str, Path]:
    """
    Set up logging for one planning pass.

    The log file is named after the cluster being planned so passes for
    different clusters do not interleave. `context` (desired version, store
    location, machine count) is written into the header of the file.
    Returns (logger, run_id, log_path); observers reuse run_id.
    """
    run_id = str(uuid.uuid4())

    if base_dir is None:
        base_dir = Path.home() / ".nodeplan" / "logs"
    base_dir.mkdir(parents=True, exist_ok=True)

    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    scope = sanitize_name(cluster) if cluster else "pass"
    log_path = base_dir / f"{name}-{scope}-{ts}-{run_id[:8]}.log"

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = False

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # file gets everything
    fh = logging.FileHandler(log_path)
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)

    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(formatter)

    logger.addHandler(fh)
    logger.addHandler(ch)

    logger.info("=== planning pass for %s ===", cluster or "<unnamed cluster>")
    logger.info("run_id=%s log_file=%s", run_id, log_path)
    for key, value in (context or {}).items():
        logger.debug("%s=%s", key, value)

    return logger, run_id, log_path
