from __future__ import annotations

from pathlib import Path

from filelock import FileLock


def title_lock(lock_dir: Path, folder_name: str) -> FileLock:
    lock_dir.mkdir(parents=True, exist_ok=True)
    return FileLock(str(lock_dir / f"{folder_name}.lock"))
