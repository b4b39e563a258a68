from __future__ import annotations

import asyncio
import base64
import json
from pathlib import Path

from fastapi.testclient import TestClient

from attestview.api.server import create_app
from attestview.config import Settings
from attestview.core.patterns import recognize


def _envelope() -> bytes:
    statement = {
        "_type": "https://in-toto.io/Statement/v0.1",
        "subject": [{"name": "image", "digest": {"sha256": "c0ffee"}}],
        "predicateType": "https://slsa.dev/provenance/v0.2",
        "predicate": {"builder": {"id": "ci"}},
    }
    doc = {
        "payload": base64.b64encode(json.dumps(statement).encode("utf-8")).decode("ascii"),
        "payloadType": "application/vnd.in-toto+json",
        "signatures": [{"keyid": "k", "sig": "c2ln"}],
    }
    return json.dumps(doc).encode("utf-8")


def _client(tmp_path: Path, **overrides) -> TestClient:
    settings = Settings(history_db=tmp_path / "history.db", **overrides)
    return TestClient(create_app(settings=settings))


def test_api_health_and_request_id(tmp_path: Path) -> None:
    client = _client(tmp_path)

    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "history": True}
    assert r.headers.get("x-request-id")

    r2 = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert r2.headers["x-request-id"] == "abc-123"


def test_api_normalize(tmp_path: Path) -> None:
    client = _client(tmp_path)

    r = client.post("/normalize", content=b'{"a": "[1, 2]", "n": 5}')
    assert r.status_code == 200
    data = r.json()
    assert data["tree"] == {"a": [1, 2], "n": 5}
    assert data["transformations"] == [{"path": "a", "kind": "JSON", "originalValue": "[1, 2]"}]


def test_api_recognize_and_analyze(tmp_path: Path) -> None:
    client = _client(tmp_path)

    r = client.post("/recognize", content=_envelope())
    assert r.status_code == 200
    assert r.json()["type"] == "DSSE"
    assert r.json()["metadata"]["subjectName"] == "image"

    r2 = client.post("/analyze", content=_envelope())
    assert r2.status_code == 200
    data = r2.json()
    assert data["pattern"]["type"] == "DSSE"
    assert data["tree"]["payload"]["predicate"] == {"builder": {"id": "ci"}}
    assert data["transformations"][0]["kind"] == "Base64->JSON"

    # Not recorded unless asked.
    assert client.get("/history").json() == []


def test_api_analyze_records_history(tmp_path: Path) -> None:
    client = _client(tmp_path)

    assert client.post("/analyze?record=true", content=b'{"x": 1}').status_code == 200
    assert client.post("/analyze?record=true", content=_envelope()).status_code == 200

    items = client.get("/history").json()
    assert [it["patternType"] for it in items] == ["DSSE", None]
    assert items[1]["json"] == '{"x": 1}'
    assert isinstance(items[0]["timestamp"], int)

    assert client.delete("/history/0").json() == {"ok": True}
    assert [it["json"] for it in client.get("/history").json()] == ['{"x": 1}']
    assert client.delete("/history/7").status_code == 404

    assert client.delete("/history").json() == {"ok": True}
    assert client.get("/history").json() == []


def test_api_invalid_json_is_400(tmp_path: Path) -> None:
    client = _client(tmp_path)

    for path in ["/normalize", "/recognize", "/analyze", "/certificates", "/share"]:
        r = client.post(path, content=b"{nope")
        assert r.status_code == 400
        assert r.json()["detail"] == "Invalid JSON format"


def test_api_body_size_limit(tmp_path: Path) -> None:
    client = _client(tmp_path, max_body_bytes=16)

    r = client.post("/normalize", content=b'{"data": "' + b"x" * 64 + b'"}')
    assert r.status_code == 413
    assert r.json()["detail"] == "body_too_large"


def test_api_history_disabled_without_db() -> None:
    client = TestClient(create_app(settings=Settings()))

    assert client.get("/health").json()["history"] is False
    assert client.get("/history").status_code == 404
    assert client.post("/analyze?record=true", content=b"{}").status_code == 404
    # Analysis itself still works.
    assert client.post("/analyze", content=b"{}").status_code == 200


def test_api_share_and_certificates(tmp_path: Path) -> None:
    client = _client(tmp_path, share_base_url="https://viewer.local/?json=")

    r = client.post("/share", content=b'{"a": 1}')
    assert r.status_code == 200
    data = r.json()
    assert data["url"] == "https://viewer.local/?json=" + data["token"]
    assert data["too_long"] is False

    r2 = client.post("/certificates", content=_envelope())
    assert r2.status_code == 200
    assert r2.json() == []


def test_api_document_work_runs_off_the_event_loop(tmp_path: Path, monkeypatch) -> None:
    import attestview.api.server as server

    seen: list = []

    def _recognize(doc):
        try:
            asyncio.get_running_loop()
            seen.append("event-loop")
        except RuntimeError:
            seen.append("worker")
        return recognize(doc)

    monkeypatch.setattr(server, "recognize", _recognize)
    client = _client(tmp_path)

    r = client.post("/recognize", content=_envelope())

    assert r.status_code == 200
    assert r.json()["type"] == "DSSE"
    assert seen == ["worker"]


def test_api_recognize_non_string_statement_type(tmp_path: Path) -> None:
    client = _client(tmp_path)
    doc = {"_type": ["x"], "subject": [], "predicateType": "p", "predicate": {}}

    r = client.post("/analyze", content=json.dumps(doc).encode("utf-8"))

    assert r.status_code == 200
    assert r.json()["pattern"]["type"] == "UNKNOWN"
