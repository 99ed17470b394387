# sleepnorm/domains/common/progress.py
from __future__ import annotations
import os
import sys
import time
from contextlib import contextmanager
from typing import Optional

from tqdm import tqdm


def _should_show_tqdm() -> bool:
    """Determine if tqdm should be shown.

    - ETL_TQDM=1 forces display
    - ETL_TQDM=0 disables
    - CI environment disables
    - Otherwise only when stdout is a TTY
    """
    if os.getenv("ETL_TQDM") == "1":
        return True
    if os.getenv("ETL_TQDM") == "0":
        return False

    if os.getenv("CI"):
        return False

    try:
        return bool(sys.stdout.isatty())
    except (AttributeError, ValueError):
        return False


class Timer:
    def __init__(self, label: str = "task"):
        self.label = label
        self.start = 0.0
        self.elapsed = 0.0

    def __enter__(self):
        self.start = time.perf_counter()
        print(f">>> {self.label} ...")
        return self

    def __exit__(self, exc_type, exc, tb):
        self.elapsed = time.perf_counter() - self.start
        status = "OK" if exc is None else "ERROR"
        print(f"[{status}] {self.label}: {self.elapsed:.2f}s")


@contextmanager
def progress_bar(total: Optional[int], desc: str = "", unit: str = "rows"):
    """Context manager yielding a tqdm bar; hidden unless `_should_show_tqdm()`."""
    disable = not _should_show_tqdm()
    with tqdm(total=total, desc=desc, unit=unit, disable=disable, file=sys.stdout) as bar:
        yield bar
