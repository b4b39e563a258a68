from __future__ import annotations

import base64
import json
from pathlib import Path

import pytest

from attestview.cli.main import build_parser, main


def _write(tmp_path: Path, name: str, obj) -> Path:
    p = tmp_path / name
    p.write_text(obj if isinstance(obj, str) else json.dumps(obj), encoding="utf-8")
    return p


def _statement_envelope() -> dict:
    statement = {
        "_type": "https://in-toto.io/Statement/v1",
        "subject": [{"name": "app", "digest": {"sha256": "deadbeef"}}],
        "predicateType": "https://slsa.dev/provenance/v1",
        "predicate": {},
    }
    return {
        "payload": base64.b64encode(json.dumps(statement).encode("utf-8")).decode("ascii"),
        "payloadType": "application/vnd.in-toto+json",
        "signatures": [{"keyid": "k"}],
    }


def test_cli_unwrap_prints_tree_and_log(tmp_path: Path, capsys) -> None:
    doc = _write(tmp_path, "doc.json", {"data": '{"x": 1}', "ts": 1700000000})

    assert main(["unwrap", str(doc)]) == 0
    out = json.loads(capsys.readouterr().out)

    assert out["tree"] == {"data": {"x": 1}, "ts": "2023-11-14 22:13:20"}
    assert [t["path"] for t in out["transformations"]] == ["data", "ts"]
    assert out["transformations"][1]["originalValue"] == "1700000000"


def test_cli_unwrap_tree_only(tmp_path: Path, capsys) -> None:
    doc = _write(tmp_path, "doc.json", {"data": "[1, 2]"})

    assert main(["unwrap", "--tree-only", str(doc)]) == 0
    assert json.loads(capsys.readouterr().out) == {"data": [1, 2]}


def test_cli_recognize_dsse(tmp_path: Path, capsys) -> None:
    doc = _write(tmp_path, "env.json", _statement_envelope())

    assert main(["recognize", str(doc)]) == 0
    out = json.loads(capsys.readouterr().out)

    assert out["type"] == "DSSE"
    assert out["metadata"]["digest"] == "deadbeef"


def test_cli_invalid_json_exits_2(tmp_path: Path, capsys) -> None:
    doc = _write(tmp_path, "bad.json", "{not json")

    assert main(["analyze", str(doc)]) == 2
    assert "Invalid JSON format" in capsys.readouterr().err


def test_cli_analyze_records_history(tmp_path: Path, capsys) -> None:
    db = tmp_path / "history.db"
    doc = _write(tmp_path, "env.json", _statement_envelope())

    assert main(["analyze", str(doc), "--history", str(db)]) == 0
    analyzed = json.loads(capsys.readouterr().out)
    assert analyzed["pattern"]["type"] == "DSSE"

    assert main(["history", "list", "--db", str(db), "--json"]) == 0
    items = json.loads(capsys.readouterr().out)
    assert len(items) == 1
    assert items[0]["patternType"] == "DSSE"
    assert json.loads(items[0]["json"]) == _statement_envelope()

    assert main(["history", "list", "--db", str(db)]) == 0
    assert "[DSSE]" in capsys.readouterr().out

    assert main(["history", "show", "0", "--db", str(db)]) == 0
    assert json.loads(capsys.readouterr().out) == _statement_envelope()

    assert main(["history", "show", "3", "--db", str(db)]) == 1

    assert main(["history", "clear", "--db", str(db)]) == 0
    assert main(["history", "list", "--db", str(db), "--json"]) == 0
    assert json.loads(capsys.readouterr().out) == []


def test_cli_history_remove_out_of_range(tmp_path: Path, capsys) -> None:
    db = tmp_path / "history.db"

    assert main(["history", "remove", "0", "--db", str(db)]) == 1
    assert "error" in capsys.readouterr().err


def test_cli_history_requires_db(monkeypatch) -> None:
    monkeypatch.delenv("ATTESTVIEW_HISTORY_DB", raising=False)

    with pytest.raises(SystemExit):
        main(["history", "list"])


def test_cli_share_and_unshare(tmp_path: Path, capsys) -> None:
    text = '{"hello": "world"}'
    doc = _write(tmp_path, "doc.json", text)

    assert main(["share", str(doc), "--base-url", "https://viewer.local/?json="]) == 0
    url = capsys.readouterr().out.strip()
    assert url.startswith("https://viewer.local/?json=")

    assert main(["unshare", url]) == 0
    assert capsys.readouterr().out.strip() == text

    assert main(["unshare", "%%%"]) == 2


def test_cli_share_warns_on_long_url(tmp_path: Path, capsys) -> None:
    doc = _write(tmp_path, "doc.json", {"a": 1})

    assert main(["share", str(doc), "--max-length", "5"]) == 0
    assert "warning" in capsys.readouterr().err


def test_cli_certs_without_certificates(tmp_path: Path, capsys) -> None:
    doc = _write(tmp_path, "env.json", _statement_envelope())

    assert main(["certs", str(doc)]) == 0
    assert json.loads(capsys.readouterr().out) == []


def test_build_parser_requires_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
