# airdl/core/metadata.py
"""
Sidecar metadata stored next to every downloaded artifact:

    {
      "urn": "urn:air:flux1:lora:civitai:1075055@1206817",
      "datetime": "2023-07-01T12:34:56.789Z",
      "content_hash": "<sha256 hex>"
    }

`urn` and `datetime` are required; `content_hash` is optional on read so files
written by older tools still load.
"""
from __future__ import annotations
import json
import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import CorruptMetadata, MetadataNotFound, StorageError
from .utils import format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

_SHA256_HEX = re.compile(r"^[0-9a-f]{64}$")


@dataclass(frozen=True)
class ModelMetadata:
    urn: str
    fetched_at: datetime
    content_hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"urn": self.urn, "datetime": format_timestamp(self.fetched_at)}
        if self.content_hash:
            out["content_hash"] = self.content_hash
        return out

    @classmethod
    def from_dict(cls, data: Any) -> "ModelMetadata":
        if not isinstance(data, dict):
            raise ValueError("top-level value is not an object")
        urn = data.get("urn")
        if not isinstance(urn, str) or not urn.strip():
            raise ValueError("missing 'urn'")
        stamp = data.get("datetime")
        if not isinstance(stamp, str):
            raise ValueError("missing 'datetime'")
        fetched_at = parse_timestamp(stamp)
        content_hash = data.get("content_hash")
        if content_hash is not None:
            if not isinstance(content_hash, str) or not _SHA256_HEX.match(content_hash.lower()):
                raise ValueError("'content_hash' is not a SHA-256 hex digest")
            content_hash = content_hash.lower()
        return cls(urn=urn, fetched_at=fetched_at, content_hash=content_hash)


def load_metadata(path: Path) -> ModelMetadata:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise MetadataNotFound("Metadata file not found", path) from None
    except OSError as e:
        raise StorageError(f"Cannot read metadata ({e.strerror})", path) from e
    try:
        return ModelMetadata.from_dict(json.loads(text))
    except ValueError as e:  # JSONDecodeError is a ValueError
        raise CorruptMetadata(f"Corrupt metadata ({e}); re-download the model with --urn", path) from e


def save_metadata(path: Path, meta: ModelMetadata) -> None:
    """Write via a sibling temp file + rename so readers never see half a file."""
    path = Path(path)
    tmp = path.with_name(path.name + ".tmp")
    payload = json.dumps(meta.to_dict(), indent=2, ensure_ascii=False) + "\n"
    try:
        with tmp.open("w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        raise StorageError(f"Cannot write metadata ({e.strerror})", path) from e
    logger.debug("Saved metadata %s", path)
