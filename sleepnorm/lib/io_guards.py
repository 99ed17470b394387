"""Atomic CSV write helpers.

Outputs are written to a temporary file in the target directory and moved
into place, so a crashed or cancelled run never leaves a half-written CSV.
An existing target is copied to ``<stem>_prev<suffix>`` (or the given
backup name) before it is replaced.
"""
from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional

import pandas as pd

logger = logging.getLogger("etl.io")


def _compute_backup_path(p: Path, backup_name: Optional[str]) -> Path:
    """Backup path for `p`.

    - None -> <stem>_prev<suffix>
    - a name with a suffix -> used as the exact filename
    - otherwise -> <stem>_<backup_name><suffix>
    """
    if backup_name is None:
        return p.with_name(p.stem + "_prev" + p.suffix)
    if Path(backup_name).suffix:
        return p.with_name(backup_name)
    return p.with_name(p.stem + "_" + backup_name + p.suffix)


def atomic_backup_write(
    df: pd.DataFrame,
    path: Path,
    backup_name: Optional[str] = None,
    dry_run: bool = False,
) -> None:
    """Atomically write `df` to `path`, backing up an existing file first."""
    p = Path(path)
    if dry_run:
        logger.info("DRY RUN: would write %d rows -> %s", len(df), p)
        if p.exists():
            logger.info("DRY RUN: would backup existing %s -> %s", p, _compute_backup_path(p, backup_name))
        return

    p.parent.mkdir(parents=True, exist_ok=True)
    if p.exists():
        shutil.copy2(p, _compute_backup_path(p, backup_name))

    with tempfile.NamedTemporaryFile("w", delete=False, dir=str(p.parent), prefix=p.name + ".tmp.", newline="") as tf:
        tmp = Path(tf.name)
        df.to_csv(tf, index=False)
    tmp.replace(p)


def write_csv(df: pd.DataFrame, path: Path, *, dry_run: bool = False, backup_name: Optional[str] = None) -> None:
    atomic_backup_write(df=df, path=Path(path), backup_name=backup_name, dry_run=dry_run)
    if not dry_run:
        logger.info("wrote %d rows -> %s", len(df), path)
