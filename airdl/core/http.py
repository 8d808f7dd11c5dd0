from __future__ import annotations
from typing import Dict, Optional

import requests
from requests.adapters import HTTPAdapter, Retry

from .errors import AuthError, ModelNotFound, NetworkError

UA = "AIR-Model-Downloader/0.1"

def make_session() -> requests.Session:
    retries = Retry(
        total=2, backoff_factor=0.3,
        status_forcelist=(429,500,502,503,504),
        allowed_methods=frozenset(["GET","HEAD"]),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retries, pool_connections=4, pool_maxsize=4)
    s = requests.Session()
    s.mount("http://", adapter); s.mount("https://", adapter)
    s.headers.update({"User-Agent": UA})
    return s

SESSION = make_session()

def auth_headers(token: Optional[str]) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"} if token else {}

def check_status(r: requests.Response, what: str) -> None:
    """Map an HTTP status onto the error taxonomy; 2xx passes through."""
    code = r.status_code
    if code < 400:
        return
    if code in (401, 403):
        raise AuthError(
            f"{what}: access denied ({code}). Check that --token is a valid API key"
            " with access to this model."
        )
    if code == 404:
        raise ModelNotFound(f"{what}: not found (404)")
    raise NetworkError(f"{what}: HTTP {code}")
