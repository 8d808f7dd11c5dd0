import json

import pytest

from airdl.core import (
    AuthError, HashMismatch, IncompleteTransfer, NetworkError, download_model, parse_urn, resolve_paths,
)
from airdl.core.paths import part_path_for
from airdl.core.remote import DownloadDescriptor

from conftest import API, FILE_URL, PAYLOAD, FakeResponse, body_response, civitai_version, sha

RAW = "urn:air:flux1:lora:civitai:1075055@1206817"


@pytest.fixture
def urn():
    return parse_urn(RAW)


@pytest.fixture
def paths(urn, tmp_path):
    return resolve_paths(urn, tmp_path)


def test_download_writes_artifact_and_metadata(fake_session, urn, tmp_path, paths):
    fake_session.routes[f"{API}/model-versions/1206817"] = FakeResponse(200, json_data=civitai_version())
    fake_session.routes[FILE_URL] = body_response()
    artifact, meta_path = paths

    result = download_model(urn, tmp_path, "tok")

    assert result.artifact_path == artifact
    assert artifact.read_bytes() == PAYLOAD
    assert result.content_hash == sha(PAYLOAD)
    assert result.size == len(PAYLOAD)
    meta = json.loads(meta_path.read_text())
    assert meta["urn"] == RAW
    assert meta["content_hash"] == sha(PAYLOAD)
    assert meta["datetime"].endswith("Z")
    assert not part_path_for(artifact).exists()
    body = fake_session.body_calls()
    assert len(body) == 1
    assert body[0]["headers"]["Authorization"] == "Bearer tok"


def test_progress_reports_bytes_and_total(fake_session, urn, tmp_path):
    fake_session.routes[FILE_URL] = body_response()
    seen = []
    download_model(
        urn, tmp_path, descriptor=DownloadDescriptor(url=FILE_URL),
        on_progress=lambda done, total: seen.append((done, total)), chunk_size=16 * 1024,
    )
    assert seen[0] == (0, len(PAYLOAD))
    assert seen[-1] == (len(PAYLOAD), len(PAYLOAD))
    assert [d for d, _ in seen] == sorted(d for d, _ in seen)


def test_unknown_size_reports_none_total(fake_session, urn, tmp_path):
    fake_session.routes[FILE_URL] = FakeResponse(200, body=PAYLOAD)
    seen = []
    result = download_model(urn, tmp_path, descriptor=DownloadDescriptor(url=FILE_URL),
                            on_progress=lambda done, total: seen.append(total))
    assert set(seen) == {None}
    assert result.size == len(PAYLOAD)


def test_truncated_body_is_incomplete_and_nothing_promoted(fake_session, urn, tmp_path, paths):
    half = PAYLOAD[: len(PAYLOAD) // 2]
    fake_session.routes[FILE_URL] = FakeResponse(200, body=half, content_length=len(PAYLOAD))
    artifact, meta_path = paths

    with pytest.raises(IncompleteTransfer) as exc:
        download_model(urn, tmp_path, descriptor=DownloadDescriptor(url=FILE_URL))

    assert exc.value.expected == len(PAYLOAD)
    assert exc.value.received == len(half)
    assert not artifact.exists()
    assert not meta_path.exists()
    assert not part_path_for(artifact).exists()


def test_expected_size_used_when_no_content_length(fake_session, urn, tmp_path, paths):
    fake_session.routes[FILE_URL] = FakeResponse(200, body=PAYLOAD[:100])
    with pytest.raises(IncompleteTransfer):
        download_model(urn, tmp_path, descriptor=DownloadDescriptor(url=FILE_URL, expected_size=len(PAYLOAD)))
    assert not paths[0].exists()


def test_dropped_connection_is_incomplete(fake_session, urn, tmp_path, paths):
    fake_session.routes[FILE_URL] = body_response(fail_after=32 * 1024)
    with pytest.raises(IncompleteTransfer):
        download_model(urn, tmp_path, descriptor=DownloadDescriptor(url=FILE_URL), chunk_size=16 * 1024)
    assert not paths[0].exists()


def test_incomplete_is_retryable_network_error():
    assert issubclass(IncompleteTransfer, NetworkError)
    assert issubclass(HashMismatch, NetworkError)


def test_hash_mismatch_keeps_existing_artifact(fake_session, urn, tmp_path, paths):
    artifact, meta_path = paths
    artifact.parent.mkdir(parents=True)
    artifact.write_bytes(b"previous version")
    fake_session.routes[FILE_URL] = body_response()

    with pytest.raises(HashMismatch):
        download_model(urn, tmp_path, descriptor=DownloadDescriptor(url=FILE_URL, remote_hash="0" * 64))

    assert artifact.read_bytes() == b"previous version"
    assert not meta_path.exists()
    assert not part_path_for(artifact).exists()


def test_auth_error_on_body(fake_session, urn, tmp_path, paths):
    fake_session.routes[FILE_URL] = FakeResponse(401)
    with pytest.raises(AuthError):
        download_model(urn, tmp_path, descriptor=DownloadDescriptor(url=FILE_URL))
    assert not paths[0].exists()


def test_resume_continues_partial_file(fake_session, urn, tmp_path, paths):
    artifact, _ = paths
    part = part_path_for(artifact)
    part.parent.mkdir(parents=True)
    done = 30000
    part.write_bytes(PAYLOAD[:done])
    rest = PAYLOAD[done:]
    fake_session.routes[FILE_URL] = FakeResponse(206, body=rest, content_length=len(rest))

    result = download_model(urn, tmp_path, descriptor=DownloadDescriptor(url=FILE_URL, remote_hash=sha(PAYLOAD)))

    assert fake_session.body_calls()[0]["headers"]["Range"] == f"bytes={done}-"
    assert artifact.read_bytes() == PAYLOAD
    assert result.content_hash == sha(PAYLOAD)
    assert result.resumed_from == done


def test_resume_ignored_by_server_restarts(fake_session, urn, tmp_path, paths):
    artifact, _ = paths
    part = part_path_for(artifact)
    part.parent.mkdir(parents=True)
    part.write_bytes(b"garbage from an older attempt")
    fake_session.routes[FILE_URL] = body_response()

    result = download_model(urn, tmp_path, descriptor=DownloadDescriptor(url=FILE_URL, remote_hash=sha(PAYLOAD)))

    assert artifact.read_bytes() == PAYLOAD
    assert result.resumed_from == 0


def test_unsatisfiable_range_restarts(fake_session, urn, tmp_path, paths):
    artifact, _ = paths
    part = part_path_for(artifact)
    part.parent.mkdir(parents=True)
    part.write_bytes(PAYLOAD + b"too long")
    fake_session.routes[FILE_URL] = [FakeResponse(416), body_response()]

    download_model(urn, tmp_path, descriptor=DownloadDescriptor(url=FILE_URL, remote_hash=sha(PAYLOAD)))

    calls = fake_session.body_calls()
    assert "Range" in calls[0]["headers"]
    assert "Range" not in calls[1]["headers"]
    assert artifact.read_bytes() == PAYLOAD


def test_interrupt_leaves_only_part_file(fake_session, urn, tmp_path, paths):
    artifact, meta_path = paths

    def interrupted(done, total):
        if done > 0:
            raise KeyboardInterrupt

    fake_session.routes[FILE_URL] = body_response()
    with pytest.raises(KeyboardInterrupt):
        download_model(urn, tmp_path, descriptor=DownloadDescriptor(url=FILE_URL), on_progress=interrupted)

    assert part_path_for(artifact).exists()
    assert not artifact.exists()
    assert not meta_path.exists()


def test_explicit_artifact_path_and_raw_urn(fake_session, urn, tmp_path):
    target = tmp_path / "custom" / "my.safetensors"
    fake_session.routes[FILE_URL] = body_response()

    result = download_model(urn, tmp_path, artifact_path=target, descriptor=DownloadDescriptor(url=FILE_URL),
                            raw_urn="urn:air:flux1:lora:civitai:1075055@1206817")

    assert target.read_bytes() == PAYLOAD
    assert result.metadata_path == tmp_path / "custom" / "my.safetensors.metadata.json"
    assert json.loads(result.metadata_path.read_text())["urn"] == RAW


def test_partial_file_without_remote_hash_is_restarted(fake_session, urn, tmp_path, paths):
    artifact, _ = paths
    part = part_path_for(artifact)
    part.parent.mkdir(parents=True)
    part.write_bytes(b"bytes of an older upload")
    fake_session.routes[FILE_URL] = body_response()

    result = download_model(urn, tmp_path, descriptor=DownloadDescriptor(url=FILE_URL))

    assert "Range" not in fake_session.body_calls()[0]["headers"]
    assert artifact.read_bytes() == PAYLOAD
    assert result.resumed_from == 0


def test_body_is_requested_unencoded(fake_session, urn, tmp_path):
    fake_session.routes[FILE_URL] = body_response()
    download_model(urn, tmp_path, descriptor=DownloadDescriptor(url=FILE_URL))
    assert fake_session.body_calls()[0]["headers"]["Accept-Encoding"] == "identity"


def test_encoded_body_length_is_not_compared(fake_session, urn, tmp_path, paths):
    # Content-Length counts the compressed bytes, iter_content yields decoded ones
    fake_session.routes[FILE_URL] = FakeResponse(
        200, body=PAYLOAD, content_length=len(PAYLOAD) // 10, headers={"Content-Encoding": "gzip"},
    )
    seen = []

    result = download_model(urn, tmp_path, descriptor=DownloadDescriptor(url=FILE_URL, remote_hash=sha(PAYLOAD)),
                            on_progress=lambda done, total: seen.append(total))

    assert paths[0].read_bytes() == PAYLOAD
    assert result.size == len(PAYLOAD)
    assert set(seen) == {None}


def test_progress_callback_error_removes_part_file(fake_session, urn, tmp_path, paths):
    artifact, meta_path = paths

    def broken(done, total):
        if done > 0:
            raise RuntimeError("display went away")

    fake_session.routes[FILE_URL] = body_response()
    with pytest.raises(RuntimeError):
        download_model(urn, tmp_path, descriptor=DownloadDescriptor(url=FILE_URL), on_progress=broken)

    assert not part_path_for(artifact).exists()
    assert not artifact.exists()
    assert not meta_path.exists()
