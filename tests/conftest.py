import hashlib
from typing import Any, Callable, Dict, List, Optional, Union

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from airdl.core import download as download_mod
from airdl.core import remote as remote_mod
from airdl.core import update as update_mod

API = "https://civitai.com/api/v1"
FILE_URL = "https://civitai.com/api/download/models/1206817"
PAYLOAD = b"safetensors-weights-" * 4096  # 80 KiB


def sha(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class FakeResponse:
    """Just enough of requests.Response for the engine: status, headers, json, streamed body."""

    def __init__(
        self,
        status_code: int = 200,
        json_data: Any = None,
        body: bytes = b"",
        headers: Optional[Dict[str, str]] = None,
        content_length: Optional[int] = None,
        fail_after: Optional[int] = None,
    ):
        self.status_code = status_code
        self._json = json_data
        self.body = body
        self.headers = CaseInsensitiveDict(headers or {})
        if content_length is not None:
            self.headers["Content-Length"] = str(content_length)
        self.fail_after = fail_after
        self.closed = False

    def json(self) -> Any:
        if self._json is None:
            raise ValueError("no JSON body")
        return self._json

    def iter_content(self, chunk_size: int = 1):
        sent = 0
        for i in range(0, len(self.body), chunk_size):
            if self.fail_after is not None and sent >= self.fail_after:
                raise requests.exceptions.ChunkedEncodingError("connection broken")
            chunk = self.body[i:i + chunk_size]
            sent += len(chunk)
            yield chunk

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


Route = Union[FakeResponse, Callable[..., FakeResponse], List[FakeResponse]]


class FakeSession:
    """Routes GET by URL; records every call for assertions."""

    def __init__(self, routes: Optional[Dict[str, Route]] = None):
        self.routes: Dict[str, Route] = dict(routes or {})
        self.calls: List[Dict[str, Any]] = []

    def get(self, url: str, **kwargs) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(404)
        if isinstance(route, list):
            return route.pop(0)
        if callable(route):
            return route(url, **kwargs)
        return route

    def body_calls(self) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c.get("stream")]


def civitai_version(version_id: int = 1206817, model_id: int = 1075055, data: bytes = PAYLOAD,
                    url: str = FILE_URL, files: Optional[list] = None) -> Dict[str, Any]:
    return {
        "id": version_id,
        "modelId": model_id,
        "name": "v1.0",
        "files": files if files is not None else [{
            "id": 999,
            "name": "my_lora.safetensors",
            "type": "Model",
            "primary": True,
            "metadata": {"format": "SafeTensor"},
            "hashes": {"SHA256": sha(data).upper()},
            "downloadUrl": url,
        }],
    }


def body_response(data: bytes = PAYLOAD, **kw) -> FakeResponse:
    return FakeResponse(200, body=data, content_length=kw.pop("content_length", len(data)), **kw)


@pytest.fixture
def fake_session(monkeypatch):
    """A FakeSession wired as the default transport of every core module."""
    s = FakeSession()
    for mod in (remote_mod, download_mod, update_mod):
        monkeypatch.setattr(mod, "SESSION", s)
    return s


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setenv("AIRDL_CONFIG", str(tmp_path / "cfg" / "config.json"))
    monkeypatch.delenv("CIVITAI_TOKEN", raising=False)
    monkeypatch.delenv("AIRDL_BASE_DIR", raising=False)
