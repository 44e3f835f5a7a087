"""One-call codec helpers and the command line."""

from __future__ import annotations

import base64
import json

import pytest

from spud import ValidationError, decode_spud, encode_spud, json_to_spud, strip_oids, to_base64
from spud.cli import main

RECORDS = [
    {"name": "Yukon Gold", "weight": 1.5, "tags": ["waxy", "yellow"], "origin": {"country": "CA"}},
    {"name": "Russet", "weight": 2.25, "tags": [], "origin": None},
]


def test_encode_decode_list_of_records() -> None:
    data = encode_spud(RECORDS)

    assert strip_oids(decode_spud(data, want_array=True)) == RECORDS
    assert isinstance(decode_spud(data), list)


def test_single_record_decodes_to_a_dict() -> None:
    decoded = decode_spud(encode_spud(RECORDS[0]))

    assert isinstance(decoded["oid"], str)
    assert strip_oids(decoded) == RECORDS[0]


@pytest.mark.parametrize("value", [1, "text", None, [1, 2], [{"a": 1}, 2]])
def test_top_level_must_be_objects(value) -> None:
    with pytest.raises(ValidationError):
        encode_spud(value)


def test_json_to_spud_and_base64() -> None:
    data = json_to_spud(json.dumps(RECORDS[1]))

    assert base64.b64decode(to_base64(data)) == data
    assert data.startswith(b"SPUD-0.8.1")


def test_cli_encode_decode_inspect(tmp_path, capsys) -> None:
    src = tmp_path / "records.json"
    src.write_text(json.dumps(RECORDS), encoding="utf-8")
    spud_file = tmp_path / "records.spud"
    out = tmp_path / "back.json"

    assert main(["encode", str(src), str(spud_file)]) == 0
    assert "records.spud" in capsys.readouterr().out

    assert main(["decode", str(spud_file), "-o", str(out), "--pretty"]) == 0
    assert strip_oids(json.loads(out.read_text(encoding="utf-8"))) == RECORDS

    assert main(["decode", str(spud_file), "--array"]) == 0
    assert len(json.loads(capsys.readouterr().out)) == 2

    assert main(["inspect", str(spud_file)]) == 0
    report = capsys.readouterr().out
    assert "Version: SPUD-0.8.1" in report
    assert "Root objects: 2" in report
    assert "weight" in report


def test_cli_reports_errors(tmp_path, capsys) -> None:
    bad = tmp_path / "bad.spud"
    bad.write_bytes(b"NOT-A-SPUD-FILE")

    assert main(["decode", str(bad)]) == 1
    assert "version mismatch" in capsys.readouterr().err

    assert main(["inspect", str(tmp_path / "missing.spud")]) == 1
    assert capsys.readouterr().err.startswith("Error:")
