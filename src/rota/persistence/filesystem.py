"""File-based persistence helpers."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from ..config import settings


class FileStorage:
    """Thin wrapper around the data root for reading and writing JSON documents."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, name: str | Path) -> Path:
        path = Path(name)
        return path if path.is_absolute() else self.root / path

    def read_json(self, path: Path, default: Any = None) -> Any:
        if not path.exists():
            return default
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    def write_json(self, path: Path, data: Any, *, indent: int = 2) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Write next to the target then swap, so readers never see half a file
        tmp_path = path.with_name(f".{path.name}.tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=indent)
        os.replace(tmp_path, path)
