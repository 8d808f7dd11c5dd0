# airdl/core/download.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple
import hashlib
import logging
import os

import requests

from .errors import AirError, HashMismatch, IncompleteTransfer, NetworkError, StorageError
from .http import SESSION, auth_headers, check_status
from .metadata import ModelMetadata, save_metadata
from .paths import metadata_path_for, part_path_for, resolve_paths
from .remote import DownloadDescriptor, resolve_descriptor
from .urn import ModelURN
from .utils import utc_now

logger = logging.getLogger(__name__)

ProgressCB = Callable[[int, Optional[int]], None]  # (downloaded_bytes, total_bytes or None)

DEFAULT_CHUNK = 128 * 1024


@dataclass(frozen=True)
class DownloadResult:
    urn: str
    artifact_path: Path
    metadata_path: Path
    content_hash: str
    size: int
    resumed_from: int = 0


def _content_length(r: requests.Response) -> Optional[int]:
    raw = r.headers.get("Content-Length")
    return int(raw) if raw and raw.isdigit() else None


def _seed_hash(h, path: Path) -> None:
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)


def stream_to_file(
    url: str,
    tmp: Path,
    token: Optional[str] = None,
    expected_size: Optional[int] = None,
    on_progress: Optional[ProgressCB] = None,
    session: Optional[requests.Session] = None,
    chunk_size: int = DEFAULT_CHUNK,
    resume: bool = True,
) -> Tuple[int, str, int]:
    """
    Stream `url` into `tmp`, continuing an existing partial file when the server
    honours a Range request. Returns (bytes on disk, sha256 hex, resumed offset).

    The byte count is checked against Content-Length (or `expected_size` when the
    server sends none); a short body raises IncompleteTransfer. With `resume` off
    an existing partial file is overwritten from byte zero.
    """
    session = session or SESSION
    offset = tmp.stat().st_size if resume and tmp.exists() else 0

    while True:
        headers = auth_headers(token)
        # byte counts and Range offsets refer to the raw body
        headers["Accept-Encoding"] = "identity"
        if offset > 0:
            headers["Range"] = f"bytes={offset}-"
        logger.debug("Starting download %s -> %s (resume=%d)", url, tmp, offset)
        r = session.get(url, stream=True, headers=headers, timeout=30, allow_redirects=True)
        if r.status_code == 416 and offset > 0:
            # stale partial file the server cannot continue; start over
            r.close()
            logger.debug("Range not satisfiable, discarding %s", tmp)
            tmp.unlink(missing_ok=True)
            offset = 0
            continue
        break

    with r:
        check_status(r, "Model download")
        h = hashlib.sha256()
        if offset > 0 and r.status_code == 206:
            _seed_hash(h, tmp)
            mode = "ab"
        else:
            offset = 0
            mode = "wb"

        length = _content_length(r)
        if r.headers.get("Content-Encoding", "identity").lower() != "identity":
            # server ignored Accept-Encoding; Content-Length counts encoded bytes
            length = None
        total = offset + length if length is not None else expected_size
        downloaded = offset
        if on_progress:
            on_progress(downloaded, total)

        with open(tmp, mode) as f:
            try:
                for chunk in r.iter_content(chunk_size=chunk_size):
                    if not chunk:
                        continue
                    f.write(chunk)
                    h.update(chunk)
                    downloaded += len(chunk)
                    if on_progress:
                        on_progress(downloaded, total)
            except requests.exceptions.ChunkedEncodingError as e:
                # connection dropped before Content-Length bytes arrived
                if total is not None:
                    raise IncompleteTransfer(total, downloaded) from e
                raise NetworkError(f"Connection lost after {downloaded} bytes: {e}") from e

    if total is not None and downloaded != total:
        raise IncompleteTransfer(total, downloaded)
    return downloaded, h.hexdigest(), offset


def download_model(
    urn: ModelURN,
    base_dir: Path,
    token: Optional[str] = None,
    *,
    artifact_path: Optional[Path] = None,
    descriptor: Optional[DownloadDescriptor] = None,
    raw_urn: Optional[str] = None,
    on_progress: Optional[ProgressCB] = None,
    session: Optional[requests.Session] = None,
    chunk_size: int = DEFAULT_CHUNK,
) -> DownloadResult:
    """
    Fetch one model end to end:
    - resolves the URN (unless a descriptor is passed in) and the local paths
    - streams into <artifact>.part, verifies size and SHA-256
    - promotes the .part with an atomic rename, then writes the sidecar metadata

    Any failure removes the .part file and leaves the artifact path untouched.
    Ctrl+C leaves the .part in place; the next run resumes it when the remote
    hash is known and starts over otherwise.
    """
    session = session or SESSION
    if descriptor is None:
        descriptor = resolve_descriptor(urn, token, session)
    if artifact_path is None:
        artifact_path, metadata_path = resolve_paths(urn, base_dir)
    else:
        metadata_path = metadata_path_for(artifact_path)
    tmp = part_path_for(artifact_path)

    try:
        artifact_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"Cannot create directory ({e.strerror})", artifact_path.parent) from e

    logger.info("Downloading %s -> %s", urn.canonical(), artifact_path)
    try:
        size, digest, resumed = stream_to_file(
            descriptor.url, tmp, token,
            expected_size=descriptor.expected_size,
            on_progress=on_progress,
            session=session,
            chunk_size=chunk_size,
            # without a remote hash a stale .part cannot be told apart from a newer file
            resume=descriptor.remote_hash is not None,
        )
        if descriptor.remote_hash and digest != descriptor.remote_hash.lower():
            raise HashMismatch(descriptor.remote_hash, digest)
        os.replace(tmp, artifact_path)
    except AirError:
        tmp.unlink(missing_ok=True)
        raise
    except requests.RequestException as e:
        tmp.unlink(missing_ok=True)
        raise NetworkError(f"Model download failed: {e}") from e
    except OSError as e:
        tmp.unlink(missing_ok=True)
        raise StorageError(f"Cannot write model file ({e.strerror})", Path(e.filename or artifact_path)) from e
    except Exception:
        tmp.unlink(missing_ok=True)
        raise

    record = raw_urn or urn.raw or urn.canonical()
    save_metadata(metadata_path, ModelMetadata(urn=record, fetched_at=utc_now(), content_hash=digest))
    logger.info("Download finished: %s (%d bytes, sha256 %s)", artifact_path, size, digest)
    return DownloadResult(
        urn=record,
        artifact_path=artifact_path,
        metadata_path=metadata_path,
        content_hash=digest,
        size=size,
        resumed_from=resumed,
    )
