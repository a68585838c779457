import json

from steel_schedule.cli import main


def write_snapshot(tmp_path, payload):
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps(payload))
    return path


TASKS = [
    {"id": "T1", "project_id": "P1", "duration_days": 5},
    {"id": "T2", "project_id": "P1", "duration_days": 3, "predecessor_ids": ["T1"]},
    {"id": "T3", "project_id": "P1", "duration_days": 1, "predecessor_ids": ["T1"]},
]


def test_cpm_command(tmp_path, capsys):
    path = write_snapshot(tmp_path, TASKS)

    assert main(["cpm", str(path)]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["project_horizon"] == 8
    assert out["timings"]["T3"]["total_float"] == 2


def test_cpm_command_with_cycle_exits_2(tmp_path, capsys):
    path = write_snapshot(tmp_path, [
        {"id": "A", "predecessor_ids": ["B"], "duration_days": 1},
        {"id": "B", "predecessor_ids": ["A"], "duration_days": 1},
    ])

    assert main(["cpm", str(path)]) == 2
    out = json.loads(capsys.readouterr().out)
    assert out["is_valid"] is False


def test_health_command(tmp_path, capsys):
    path = write_snapshot(tmp_path, {"project_id": "P1", "tasks": TASKS})

    assert main(["health", str(path), "--today", "2026-03-16"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["health_score"] == 100
    assert out["project_horizon"] == 8


def test_integrity_command(tmp_path, capsys):
    path = write_snapshot(tmp_path, TASKS + [{"id": "O", "project_id": "P9"}])

    assert main(["integrity", str(path), "--projects", "P1"]) == 1
    out = json.loads(capsys.readouterr().out)
    assert out["total_issues"] == 1


def test_bad_file_returns_error(tmp_path):
    path = write_snapshot(tmp_path, {"tasks": "nope"})
    assert main(["cpm", str(path)]) == 1
