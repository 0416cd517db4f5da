import json
import sys

import pytest

import plan_report


@pytest.fixture
def plan_files(tmp_path, school, village_houses):
    plan = {"planName": "Ward 7", "userEmail": "owner@example.com", "resources": [school]}
    plan_path = tmp_path / "plan.json"
    plan_path.write_text(json.dumps(plan))
    houses_path = tmp_path / "houses.json"
    houses_path.write_text(json.dumps(village_houses[:2]))
    return plan_path, houses_path


def _run(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["plan_report.py", *map(str, argv)])
    plan_report.main()


def test_report_prints_summary(monkeypatch, capsys, plan_files):
    plan_path, houses_path = plan_files
    _run(monkeypatch, plan_path, "--houses", houses_path)

    out = capsys.readouterr().out
    assert "PLAN QUALITY SCORE: Ward 7" in out
    assert "School A" in out
    assert "Residents Covered: 10" in out
    assert "Houses covered: 2 / 2" in out


def test_report_merges_private_database(monkeypatch, capsys, tmp_path, plan_files, village_houses):
    plan_path, houses_path = plan_files
    db_path = tmp_path / "survey.json"
    db_path.write_text(json.dumps([village_houses[0], village_houses[2]]))

    _run(monkeypatch, plan_path, "--houses", houses_path, "--database", db_path)

    out = capsys.readouterr().out
    assert "Merged 1 houses from 1 private database(s)" in out
    assert "Houses covered: 2 / 3" in out


def test_report_writes_export(monkeypatch, tmp_path, plan_files):
    plan_path, houses_path = plan_files
    out_path = tmp_path / "export.json"
    _run(monkeypatch, plan_path, "--houses", houses_path, "--export", out_path)

    document = json.loads(out_path.read_text())
    assert document["planMetadata"]["name"] == "Ward 7"
    assert document["analytics"]["byResource"][0]["housesCovered"] == 2


def test_report_export_default_name(monkeypatch, tmp_path, plan_files):
    plan_path, houses_path = plan_files
    monkeypatch.chdir(tmp_path)
    _run(monkeypatch, plan_path, "--houses", houses_path, "--export")

    assert len(list(tmp_path.glob("Ward_7_*.json"))) == 1


def test_report_missing_plan_exits(monkeypatch, capsys, tmp_path, plan_files):
    _, houses_path = plan_files
    with pytest.raises(SystemExit) as excinfo:
        _run(monkeypatch, tmp_path / "missing.json", "--houses", houses_path)

    assert excinfo.value.code == 1
    assert "Error: Plan file not found" in capsys.readouterr().out


def test_load_database_wraps_bare_list(tmp_path):
    path = tmp_path / "survey.json"
    path.write_text(json.dumps([{"houseId": "H1"}]))
    assert plan_report.load_database(path) == {"id": "survey", "name": "survey",
                                               "data": [{"houseId": "H1"}]}


def test_report_warns_about_unplaced_resources(monkeypatch, capsys, tmp_path, plan_files):
    _, houses_path = plan_files
    plan_path = tmp_path / "draft.json"
    plan_path.write_text(json.dumps({"resources": [{"type": "school", "radius": 800}]}))

    _run(monkeypatch, plan_path, "--houses", houses_path)

    assert "Warning: 1 resource(s) have no position" in capsys.readouterr().out


def test_report_lists_uncovered_houses(monkeypatch, capsys, tmp_path, school, village_houses):
    plan_path = tmp_path / "plan.json"
    plan_path.write_text(json.dumps({"planName": "Ward 7", "resources": [school]}))
    houses_path = tmp_path / "houses.json"
    houses_path.write_text(json.dumps(village_houses))

    _run(monkeypatch, plan_path, "--houses", houses_path)

    assert "Uncovered houses: 1 - H3" in capsys.readouterr().out
