from decimal import Decimal
from pathlib import Path

import pytest

from fundrazor.config import (
    WORKSPACES_DIR,
    WorkspaceError,
    _resolve_sqlite_path,
    load_workspace,
    set_current_workspace,
    write_workspace_config,
)


def test_resolve_sqlite_path_relative(tmp_path: Path) -> None:
    ws_dir = tmp_path / WORKSPACES_DIR / "demo"
    ws_dir.mkdir(parents=True)
    config_path = ws_dir / "workspace.yaml"
    config_path.write_text("workspace: demo\nstore:\n  sqlite_path: ./local.sqlite\n")

    resolved = _resolve_sqlite_path("./local.sqlite", config_path)
    assert resolved == (ws_dir / "local.sqlite").resolve()


def test_resolve_sqlite_path_repo_relative(tmp_path: Path) -> None:
    ws_dir = tmp_path / WORKSPACES_DIR / "demo"
    ws_dir.mkdir(parents=True)
    config_path = ws_dir / "workspace.yaml"
    config_path.write_text("workspace: demo\nstore:\n  sqlite_path: workspaces/demo/local.sqlite\n")

    resolved = _resolve_sqlite_path("workspaces/demo/local.sqlite", config_path)
    assert resolved == (tmp_path / "workspaces" / "demo" / "local.sqlite").resolve()


def test_written_workspace_loads_defaults(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    write_workspace_config("demo", "user-1")
    set_current_workspace("demo")

    ws = load_workspace()

    assert ws.name == "demo"
    assert ws.store.sqlite_path == (tmp_path / "workspaces" / "demo" / "local.sqlite").resolve()
    assert ws.engine.default_owner_id == "user-1"
    assert ws.engine.owner_role == "MGO"
    assert ws.dashboard.annual_goal == Decimal("15000000")
    assert ws.logging.level == "INFO"
    assert ws.logging.json is False


def test_missing_sections_fall_back_to_defaults(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    ws_dir = tmp_path / "workspaces" / "lean"
    ws_dir.mkdir(parents=True)
    (ws_dir / "workspace.yaml").write_text("store:\n  sqlite_path: ./db.sqlite\n")

    ws = load_workspace("lean")

    assert ws.engine.default_owner_id is None
    assert ws.engine.owner_role == "MGO"
    assert ws.dashboard.annual_goal == Decimal("15000000")


def test_invalid_owner_role_rejected(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    ws_dir = tmp_path / "workspaces" / "bad"
    ws_dir.mkdir(parents=True)
    (ws_dir / "workspace.yaml").write_text(
        "store:\n  sqlite_path: ./db.sqlite\nengine:\n  owner_role: JANITOR\n"
    )

    with pytest.raises(WorkspaceError):
        load_workspace("bad")


def test_no_current_workspace(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    with pytest.raises(WorkspaceError):
        load_workspace()
