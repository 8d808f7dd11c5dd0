# airdl/core/update.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional
import logging

import requests

from .download import ProgressCB, download_model
from .errors import MetadataError
from .http import SESSION
from .metadata import load_metadata
from .paths import artifact_path_for
from .remote import resolve_descriptor
from .urn import parse_urn
from .utils import sha256_file

logger = logging.getLogger(__name__)


class UpdateStatus(str, Enum):
    UP_TO_DATE = "up-to-date"
    UPDATED = "updated"


@dataclass(frozen=True)
class UpdateResult:
    status: UpdateStatus
    urn: str
    artifact_path: Path
    metadata_path: Path
    content_hash: Optional[str]


def update_model(
    metadata_path: Path,
    token: Optional[str] = None,
    *,
    on_progress: Optional[ProgressCB] = None,
    session: Optional[requests.Session] = None,
) -> UpdateResult:
    """
    Re-sync an artifact from its sidecar metadata.

    The stored hash (or, for metadata without one, the hash of the local file)
    is compared with the remote file's SHA-256. Equal hashes finish without
    touching the body; anything else re-downloads over the same artifact path.
    """
    session = session or SESSION
    metadata_path = Path(metadata_path)
    artifact = artifact_path_for(metadata_path)
    meta = load_metadata(metadata_path)
    try:
        urn = parse_urn(meta.urn)
    except ValueError as e:
        raise MetadataError(f"Stored URN is invalid ({e})", metadata_path) from e

    descriptor = resolve_descriptor(urn, token, session)

    local_hash: Optional[str] = None
    if artifact.exists():
        local_hash = meta.content_hash or sha256_file(artifact)
    else:
        logger.info("Artifact %s is missing; downloading again", artifact)

    if local_hash and descriptor.remote_hash and local_hash == descriptor.remote_hash:
        logger.info("%s is up to date (sha256 %s)", urn.canonical(), local_hash)
        return UpdateResult(UpdateStatus.UP_TO_DATE, meta.urn, artifact, metadata_path, local_hash)

    if descriptor.remote_hash is None:
        logger.info("Remote exposes no hash for %s; downloading unconditionally", urn.canonical())
    elif local_hash:
        logger.info("Remote changed for %s: %s -> %s", urn.canonical(), local_hash, descriptor.remote_hash)

    result = download_model(
        urn, artifact.parent, token,
        artifact_path=artifact,
        descriptor=descriptor,
        raw_urn=meta.urn,
        on_progress=on_progress,
        session=session,
    )
    return UpdateResult(UpdateStatus.UPDATED, meta.urn, result.artifact_path, result.metadata_path, result.content_hash)
