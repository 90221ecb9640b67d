"""Tests for the command-line interface."""

import json

import pytest

from trailbadge.cli import main


def _run(capsys, tmp_path, *argv) -> str:
    main(["--state", str(tmp_path / "state.json"), "--timezone", "UTC", *argv])
    return capsys.readouterr().out


def test_route_json_reports_unlock(capsys, tmp_path):
    out = json.loads(_run(capsys, tmp_path, "--json", "route"))
    assert out["command"] == "route"
    assert [u["badge"]["id"] for u in out["unlocked"]] == ["first_route"]
    assert out["unlocked"][0]["badge"]["unlocked"] is True
    assert out["stats"]["completed_routes"] == 1
    # 10 XP for the route plus the first-route reward
    assert out["stats"]["experience"] > 10


def test_second_route_unlocks_nothing_new(capsys, tmp_path):
    _run(capsys, tmp_path, "route")
    out = json.loads(_run(capsys, tmp_path, "--json", "route"))
    assert out["unlocked"] == []
    assert out["stats"]["completed_routes"] == 2


def test_festival_route(capsys, tmp_path):
    out = json.loads(_run(capsys, tmp_path, "--json", "route", "--official", "--festival", "dragon_boat"))
    ids = {u["badge"]["id"] for u in out["unlocked"]}
    assert "first_route" in ids
    assert out["stats"]["completed_official_routes"] == 1


def test_walk_accumulates(capsys, tmp_path):
    _run(capsys, tmp_path, "walk", "1200.5")
    out = json.loads(_run(capsys, tmp_path, "--json", "walk", "300"))
    assert out["stats"]["total_distance"] == pytest.approx(1500.5)


def test_record_plain_output(capsys, tmp_path):
    first = _run(capsys, tmp_path, "ar")
    assert "AR" in first
    again = _run(capsys, tmp_path, "ar")
    assert "No new badges" in again


def test_status_json(capsys, tmp_path):
    _run(capsys, tmp_path, "photo")
    data = json.loads(_run(capsys, tmp_path, "--json"))
    assert data["stats"]["photos_taken"] == 1
    assert data["pending_alerts"] == 0
    assert data["pending_alert"] is None
    assert {b["id"] for b in data["badges"]} >= {"first_route", "shutterbug"}


def test_status_plain(capsys, tmp_path):
    out = _run(capsys, tmp_path, "status")
    assert "trailbadge" in out
    assert "routes" in out


def test_badges_json_by_category(capsys, tmp_path):
    data = json.loads(_run(capsys, tmp_path, "--json", "badges", "--category", "social"))
    assert data
    assert all(b["category"] == "social" for b in data)


def test_badges_table(capsys, tmp_path):
    out = _run(capsys, tmp_path, "badges", "--category", "social")
    assert "Progress" in out
    assert "0%" in out
    assert "Dragon Boat" not in out


def test_report(capsys, tmp_path):
    _run(capsys, tmp_path, "route")
    out = _run(capsys, tmp_path, "report")
    assert out.startswith("# trailbadge Report")
    assert "- [x]" in out
    assert "| Routes Completed | 1 |" in out


def test_reset_requires_confirmation(capsys, tmp_path):
    _run(capsys, tmp_path, "route")
    with pytest.raises(SystemExit) as exc:
        _run(capsys, tmp_path, "reset")
    assert exc.value.code == 1
    assert "--yes" in capsys.readouterr().err

    data = json.loads(_run(capsys, tmp_path, "--json"))
    assert data["stats"]["completed_routes"] == 1


def test_reset_with_yes(capsys, tmp_path):
    _run(capsys, tmp_path, "route")
    assert "erased" in _run(capsys, tmp_path, "reset", "--yes")
    data = json.loads(_run(capsys, tmp_path, "--json"))
    assert data["stats"]["completed_routes"] == 0
    assert data["unlocked"] == []


def test_custom_catalog(capsys, tmp_path):
    catalog = tmp_path / "badges.json"
    catalog.write_text(json.dumps([
        {"id": "two_photos", "name": "Two Photos", "condition": {"type": "photo_taken", "target": 2}},
    ]), encoding="utf-8")

    _run(capsys, tmp_path, "--catalog", str(catalog), "photo")
    out = json.loads(_run(capsys, tmp_path, "--catalog", str(catalog), "--json", "photo"))
    assert [u["badge"]["id"] for u in out["unlocked"]] == ["two_photos"]


def test_bad_catalog_exits_with_error(capsys, tmp_path):
    catalog = tmp_path / "badges.json"
    catalog.write_text("{broken", encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        _run(capsys, tmp_path, "--catalog", str(catalog))
    assert exc.value.code == 1
    assert "Error" in capsys.readouterr().err
