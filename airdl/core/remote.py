# airdl/core/remote.py
"""
Resolve a ModelURN to a DownloadDescriptor against the model's source.

Resolvers are registered per URN `source`; only Civitai ships today:

  - pinned   GET /api/v1/model-versions/{version}   (modelId must match the URN id)
  - latest   GET /api/v1/models/{id}                (first entry of modelVersions)

Within a version the file is picked by `layer` (file id, name stem or file type)
and `format`; otherwise the primary file, else the first one.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Callable, Dict, List, Optional

import requests

from .errors import ModelNotFound, NetworkError
from .http import SESSION, auth_headers, check_status
from .urn import ModelURN
from .utils import dig

logger = logging.getLogger(__name__)

CIVITAI_API = "https://civitai.com/api/v1"

# Civitai `metadata.format` values → AIR format hint
CIVITAI_FORMATS: Dict[str, str] = {
    "safetensor": "safetensors",
    "pickletensor": "ckpt",
    "gguf": "gguf",
    "diffusers": "zip",
    "core ml": "zip",
    "onnx": "onnx",
}


@dataclass(frozen=True)
class DownloadDescriptor:
    url: str
    expected_size: Optional[int] = None
    remote_hash: Optional[str] = None
    filename: str = ""
    version_id: Optional[int] = None


Resolver = Callable[[ModelURN, Optional[str], requests.Session], DownloadDescriptor]
_RESOLVERS: Dict[str, Resolver] = {}


def register_resolver(source: str, func: Resolver) -> None:
    _RESOLVERS[source.lower()] = func


def resolve_descriptor(
    urn: ModelURN,
    token: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> DownloadDescriptor:
    func = _RESOLVERS.get(urn.source)
    if func is None:
        known = ", ".join(sorted(_RESOLVERS)) or "none"
        raise ModelNotFound(f"Unsupported source '{urn.source}' (known: {known})")
    return func(urn, token, session or SESSION)


# ---- Civitai -----------------------------------------------------------------
def _get_json(session: requests.Session, url: str, token: Optional[str], what: str) -> Any:
    logger.debug("GET %s", url)
    try:
        r = session.get(url, headers=auth_headers(token), timeout=30)
    except requests.RequestException as e:
        raise NetworkError(f"{what}: {e}") from e
    check_status(r, what)
    try:
        return r.json()
    except ValueError as e:
        raise NetworkError(f"{what}: response is not JSON") from e


def _file_format(f: Dict[str, Any]) -> str:
    fmt = str(dig(f, "metadata", "format") or "").lower()
    if fmt in CIVITAI_FORMATS:
        return CIVITAI_FORMATS[fmt]
    return PurePosixPath(str(f.get("name") or "")).suffix.lstrip(".").lower()


def _matches_layer(f: Dict[str, Any], layer: str) -> bool:
    want = layer.lower()
    name = str(f.get("name") or "")
    return (
        str(f.get("id", "")) == layer
        or PurePosixPath(name).stem.lower() == want
        or name.lower() == want
        or str(f.get("type") or "").lower() == want
    )


def pick_file(files: List[Dict[str, Any]], layer: Optional[str], fmt: Optional[str]) -> Optional[Dict[str, Any]]:
    cands = [f for f in files if isinstance(f, dict) and f.get("downloadUrl")]
    if layer:
        cands = [f for f in cands if _matches_layer(f, layer)]
    if fmt:
        cands = [f for f in cands if _file_format(f) == fmt]
    if not cands:
        return None
    primary = [f for f in cands if f.get("primary")]
    return (primary or cands)[0]


def resolve_civitai(urn: ModelURN, token: Optional[str], session: requests.Session) -> DownloadDescriptor:
    if urn.version is not None:
        what = f"Civitai model version {urn.version}"
        version = _get_json(session, f"{CIVITAI_API}/model-versions/{urn.version}", token, what)
        model_id = dig(version, "modelId")
        if model_id is not None and str(model_id) != str(urn.id):
            raise ModelNotFound(f"{what} belongs to model {model_id}, not {urn.id}")
    else:
        what = f"Civitai model {urn.id}"
        model = _get_json(session, f"{CIVITAI_API}/models/{urn.id}", token, what)
        versions = dig(model, "modelVersions")
        if not isinstance(versions, list) or not versions:
            raise ModelNotFound(f"{what} has no published versions")
        version = versions[0]

    files = dig(version, "files")
    chosen = pick_file(files if isinstance(files, list) else [], urn.layer, urn.format)
    if chosen is None:
        sel = ", ".join(f"{k}={v}" for k, v in (("layer", urn.layer), ("format", urn.format)) if v)
        raise ModelNotFound(f"{what} has no downloadable file" + (f" matching {sel}" if sel else ""))

    sha = dig(chosen, "hashes", "SHA256")
    desc = DownloadDescriptor(
        url=chosen["downloadUrl"],
        remote_hash=sha.lower() if isinstance(sha, str) and sha else None,
        filename=str(chosen.get("name") or ""),
        version_id=dig(version, "id"),
    )
    logger.debug("Resolved %s -> %s (version %s, sha256 %s)",
                 urn.canonical(), desc.filename, desc.version_id, desc.remote_hash or "n/a")
    return desc


register_resolver("civitai", resolve_civitai)
