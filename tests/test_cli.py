"""Tests for the command line interface."""

import json

from ui_migrator.cli import main

from conftest import BROKEN_TSX, PROFILE_TSX, write_tree


def test_no_command_prints_help(capsys):
    assert main([]) == 2
    assert "usage" in capsys.readouterr().out.lower()


def test_analyze(tmp_path, capsys):
    write_tree(tmp_path, {"Profile.tsx": PROFILE_TSX})

    assert main(["analyze", str(tmp_path / "Profile.tsx")]) == 0

    out = capsys.readouterr().out
    assert "=== Profile (stateful_view) ===" in out
    assert "Complexity: 7 (moderate)" in out
    assert "Strategy: pattern_mapping" in out


def test_analyze_json(tmp_path, capsys):
    write_tree(tmp_path, {"Profile.tsx": PROFILE_TSX})

    assert main(["analyze", str(tmp_path / "Profile.tsx"), "--json"]) == 0

    data = json.loads(capsys.readouterr().out)
    assert data["name"] == "Profile"
    assert data["strategy"] == "pattern_mapping"


def test_analyze_broken_file(tmp_path):
    write_tree(tmp_path, {"Broken.tsx": BROKEN_TSX})
    assert main(["analyze", str(tmp_path / "Broken.tsx")]) == 1


def test_plan(source_tree, capsys):
    assert main(["plan", "--source-root", str(source_tree)]) == 0
    out = capsys.readouterr().out
    assert out.index("components/Button.tsx") < out.index("components/Toolbar.tsx")


def test_plan_reports_cycles(cyclic_tree, capsys):
    assert main(["plan", "--source-root", str(cyclic_tree)]) == 1
    assert "Circular dependency: A.tsx -> B.tsx -> A.tsx" in capsys.readouterr().out


def test_preview(tmp_path, capsys):
    write_tree(tmp_path, {"Profile.tsx": PROFILE_TSX})

    assert main(["preview", str(tmp_path / "Profile.tsx")]) == 0

    out = capsys.readouterr().out
    assert "--- Profile/Profile.tsx ---" in out
    assert "Valid: True" in out


def test_preview_missing_file(tmp_path):
    assert main(["preview", str(tmp_path / "Missing.tsx")]) == 1


def test_run_and_report(source_tree, tmp_path, capsys):
    config = {
        "source_root": str(source_tree),
        "output_root": str(tmp_path / "out"),
        "retry": {"max_attempts": 1, "base_delay": 0},
    }
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps(config))

    assert main(["run", "--config", str(config_path)]) == 0
    assert "MIGRATION COMPLETE" in capsys.readouterr().out

    assert main(["report", str(tmp_path / "out" / "migration-manifest.json")]) == 0
    assert "Status: completed" in capsys.readouterr().out


def test_run_with_cycles_fails(cyclic_tree, tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({
        "source_root": str(cyclic_tree),
        "output_root": str(tmp_path / "out"),
    }))
    assert main(["run", "--config", str(config_path)]) == 1


def test_report_missing_manifest(tmp_path):
    assert main(["report", str(tmp_path / "missing.json")]) == 1
