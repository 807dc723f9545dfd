# ============================================================================
#  json_store.py — JSON File Persistence Helpers
#  Version: 2.0.0
#  CHANGES: Atomic writes and one process-wide lock per store file
# ============================================================================
import json
import threading
from pathlib import Path
from typing import Any, Dict, Union

_LOCKS: Dict[str, threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()


def path_lock(path: Union[str, Path]) -> threading.Lock:
    """Returns the lock shared by every store instance that opens the same file."""
    key = str(Path(path).resolve())
    with _LOCKS_GUARD:
        return _LOCKS.setdefault(key, threading.Lock())


def read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    tmp.replace(path)
# ============================================================================
# End of json_store.py — Version: 2.0.0
# ============================================================================
