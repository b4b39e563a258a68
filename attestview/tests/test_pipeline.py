import base64
import json
from pathlib import Path

import pytest

from attestview import InvalidJsonError, PatternType, TransformKind, analyze, parse_document
from attestview.config import Settings, load_settings


def _envelope() -> str:
    statement = {
        "_type": "https://in-toto.io/Statement/v0.1",
        "subject": [{"name": "pkg.tar.gz", "digest": {"sha512": "ff00"}}],
        "predicateType": "https://slsa.dev/provenance/v0.2",
        "predicate": {"buildType": "ci"},
    }
    payload = base64.b64encode(json.dumps(statement).encode("utf-8")).decode("ascii")
    return json.dumps(
        {
            "payload": payload,
            "payloadType": "application/vnd.in-toto+json",
            "signatures": [{"keyid": "", "sig": "c2lnbmF0dXJl"}],
        }
    )


def test_analyze_unwraps_and_recognizes() -> None:
    res = analyze(_envelope())

    assert res.pattern.type is PatternType.DSSE
    assert res.pattern.metadata["subjectName"] == "pkg.tar.gz"
    assert res.pattern.metadata["digest"] == "ff00"
    assert res.normalized.tree["payload"]["predicate"] == {"buildType": "ci"}
    assert res.normalized.log[0].path == "payload"
    assert res.normalized.log[0].kind is TransformKind.BASE64_JSON
    assert res.normalized.tree["signatures"][0]["sig"] == "signature"


def test_analyze_to_dict_includes_pattern() -> None:
    out = analyze('{"foo": "bar"}').to_dict()

    assert out["tree"] == {"foo": "bar"}
    assert out["transformations"] == []
    assert out["pattern"]["type"] == "UNKNOWN"


def test_analyze_respects_settings_bounds() -> None:
    res = analyze('{"a": {"b": "[1]"}}', settings=Settings(max_depth=1))

    assert res.normalized.tree == {"a": {"b": "[1]"}}


def test_parse_document_accepts_bytes() -> None:
    assert parse_document(b'{"a": [1, 2]}') == {"a": [1, 2]}


@pytest.mark.parametrize("raw", ["", "{", "{'a': 1}", "NaN", b"\xff\xfe"])
def test_invalid_top_level_json(raw) -> None:
    with pytest.raises(InvalidJsonError) as exc:
        analyze(raw)

    assert str(exc.value) == "Invalid JSON format"
    assert isinstance(exc.value, ValueError)


def test_load_settings_from_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ATTESTVIEW_MAX_DEPTH", "12")
    monkeypatch.setenv("ATTESTVIEW_MAX_CHAIN_DEPTH", "not-a-number")
    monkeypatch.setenv("ATTESTVIEW_HISTORY_DB", str(tmp_path / "h.db"))
    monkeypatch.setenv("ATTESTVIEW_LOG_LEVEL", "debug")

    cfg = load_settings()

    assert cfg.max_depth == 12
    assert cfg.max_chain_depth == 8
    assert cfg.history_db == tmp_path / "h.db"
    assert cfg.history_limit == 20
    assert cfg.log_level == "DEBUG"


def test_load_settings_explicit_db_overrides_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ATTESTVIEW_HISTORY_DB", str(tmp_path / "env.db"))

    cfg = load_settings(history_db=str(tmp_path / "cli.db"))

    assert cfg.history_db == tmp_path / "cli.db"
