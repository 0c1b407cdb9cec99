from __future__ import annotations

import json
import os

import pytest


@pytest.fixture(autouse=True)
def _quiet_logger(monkeypatch):
    import logging

    lg = logging.getLogger("edgeconsent")
    yield
    for h in list(lg.handlers):
        lg.removeHandler(h)
        h.close()


def test_update_show_reset_cycle(tmp_path, capsys):
    from app import main

    root = str(tmp_path)
    assert main(["--root", root, "update", '{"consents":{"collect":{"val":"y"}}}']) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["consents"]["collect"] == {"val": "y"}
    assert out["consents"]["metadata"]["time"]

    assert main(["--root", root, "update", '{"consents":{"adID":{"val":"n"}}}']) == 0
    capsys.readouterr()
    assert main(["--root", root, "show"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["consents"]["collect"] == {"val": "y"}
    assert out["consents"]["adID"] == {"val": "n"}

    assert main(["--root", root, "reset"]) == 0
    assert json.loads(capsys.readouterr().out) is None

    assert os.path.exists(os.path.join(root, "logs", "ops.jsonl"))
    assert os.path.exists(os.path.join(root, "logs", "events", "core_events.jsonl"))


def test_update_rejects_bad_json(tmp_path, capsys):
    from app import main

    assert main(["--root", str(tmp_path), "update", "{nope"]) == 2
    assert main(["--root", str(tmp_path), "update", "[1]"]) == 2
