from __future__ import annotations
import hashlib, math, re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

def human_size(n: Optional[int]) -> str:
    if not n or n <= 0: return "?"
    units = ["B","KB","MB","GB","TB"]
    i = min(int(math.floor(math.log(n, 1024))), len(units) - 1)
    return f"{n/(1024**i):.2f} {units[i]}"

def safe_filename(name: str) -> str:
    s = re.sub(r'[\\/*?:"<>|]+', "_", (name or "")).strip() or "file"
    # "." and ".." are directory references, not names
    return "_" if re.fullmatch(r"\.+", s) else s

def dig(obj: Any, *keys: str) -> Any:
    cur = obj
    for k in keys:
        if not isinstance(cur, dict): return None
        cur = cur.get(k)
    return cur

def sha256_file(path: Path, chunk_size: int = 1024 * 1024) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            h.update(chunk)
    return h.hexdigest()

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def format_timestamp(dt: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a 'Z' suffix."""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

def parse_timestamp(s: str) -> datetime:
    dt = datetime.fromisoformat(s.strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
