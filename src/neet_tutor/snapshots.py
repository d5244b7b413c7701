"""Whole-collection JSON snapshots in a local directory."""
import json
from pathlib import Path
from typing import Optional


class SnapshotStore:
    """Reads and writes ``<name>.json`` files under ``data_dir``."""

    def __init__(self, data_dir: str):
        self.data_dir = Path(data_dir)

    def path_for(self, name: str) -> Path:
        return self.data_dir / f"{name}.json"

    def read_snapshot(self, name: str) -> Optional[list]:
        """Return the stored records, or None when no snapshot exists."""
        path = self.path_for(name)
        if not path.exists():
            return None
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, list):
            raise ValueError(f"{path} does not contain a JSON array")
        return data

    def write_snapshot(self, name: str, records: list[dict]) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.path_for(name).write_text(json.dumps(records, indent=2), encoding="utf-8")
