from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from fundrazor.domain.stages import UserRole

WORKSPACES_DIR = Path("workspaces")
CURRENT_WORKSPACE_FILE = WORKSPACES_DIR / ".current"
WORKSPACE_FILENAME = "workspace.yaml"
DEFAULT_ANNUAL_GOAL = Decimal("15000000")


@dataclass(frozen=True)
class StoreConfig:
    sqlite_path: Path


@dataclass(frozen=True)
class EngineConfig:
    default_owner_id: str | None = None
    owner_role: str = UserRole.MGO.value


@dataclass(frozen=True)
class DashboardConfig:
    annual_goal: Decimal = DEFAULT_ANNUAL_GOAL


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    json: bool = False


@dataclass(frozen=True)
class WorkspaceConfig:
    name: str
    store: StoreConfig
    path: Path
    engine: EngineConfig = field(default_factory=EngineConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class WorkspaceError(RuntimeError):
    pass


def ensure_workspaces_dir() -> None:
    WORKSPACES_DIR.mkdir(parents=True, exist_ok=True)


def set_current_workspace(name: str) -> None:
    ensure_workspaces_dir()
    CURRENT_WORKSPACE_FILE.write_text(f"{name}\n", encoding="utf-8")


def get_current_workspace_name() -> str:
    if not CURRENT_WORKSPACE_FILE.exists():
        raise WorkspaceError("No active workspace. Run `fundrazor workspace use <name>`.")
    return CURRENT_WORKSPACE_FILE.read_text(encoding="utf-8").strip()


def workspace_path(name: str) -> Path:
    return WORKSPACES_DIR / name


def workspace_config_path(name: str) -> Path:
    return workspace_path(name) / WORKSPACE_FILENAME


def load_workspace(name: str | None = None) -> WorkspaceConfig:
    if name is None:
        name = get_current_workspace_name()
    config_path = workspace_config_path(name)
    if not config_path.exists():
        raise WorkspaceError(f"Workspace config not found: {config_path}")
    data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise WorkspaceError(f"Workspace config must be a mapping: {config_path}")
    return WorkspaceConfig(
        name=name,
        store=_parse_store(data.get("store"), config_path),
        path=config_path.parent,
        engine=_parse_engine(data.get("engine")),
        dashboard=_parse_dashboard(data.get("dashboard")),
        logging=_parse_logging(data.get("logging")),
    )


def write_workspace_config(name: str, owner_id: str | None = None) -> Path:
    ensure_workspaces_dir()
    ws_dir = workspace_path(name)
    ws_dir.mkdir(parents=True, exist_ok=True)
    config = {
        "workspace": name,
        "store": {"sqlite_path": "./local.sqlite"},
        "engine": {"default_owner_id": owner_id, "owner_role": UserRole.MGO.value},
        "dashboard": {"annual_goal": int(DEFAULT_ANNUAL_GOAL)},
        "logging": {"level": "INFO", "json": False},
    }
    config_path = workspace_config_path(name)
    config_path.write_text(yaml.safe_dump(config, sort_keys=False), encoding="utf-8")
    return config_path


def _parse_store(store_data: Any, config_path: Path) -> StoreConfig:
    if not isinstance(store_data, dict):
        raise WorkspaceError("Invalid workspace store configuration.")
    sqlite_path_raw = store_data.get("sqlite_path")
    if not sqlite_path_raw:
        raise WorkspaceError("Workspace store.sqlite_path is required.")
    sqlite_path = _resolve_sqlite_path(sqlite_path_raw, config_path)
    if sqlite_path is None:
        raise WorkspaceError("Workspace store.sqlite_path must be a string.")
    return StoreConfig(sqlite_path=sqlite_path)


def _resolve_sqlite_path(sqlite_path_raw: Any, config_path: Path) -> Path | None:
    if not isinstance(sqlite_path_raw, str):
        return None
    raw_path = Path(sqlite_path_raw)
    if raw_path.is_absolute():
        return raw_path
    workspace_dir = config_path.parent
    if raw_path.parts and raw_path.parts[0] == WORKSPACES_DIR.name:
        # Older configs spell the path from the repo root.
        return (workspace_dir.parent.parent / raw_path).resolve()
    return (workspace_dir / raw_path).resolve()


def _parse_engine(engine_data: Any) -> EngineConfig:
    if engine_data is None:
        return EngineConfig()
    if not isinstance(engine_data, dict):
        raise WorkspaceError("Invalid workspace engine configuration.")
    owner_role = engine_data.get("owner_role") or UserRole.MGO.value
    allowed = [role.value for role in UserRole]
    if owner_role not in allowed:
        raise WorkspaceError(f"engine.owner_role must be one of: {', '.join(allowed)}")
    return EngineConfig(
        default_owner_id=engine_data.get("default_owner_id") or None,
        owner_role=owner_role,
    )


def _parse_dashboard(dashboard_data: Any) -> DashboardConfig:
    if dashboard_data is None:
        return DashboardConfig()
    if not isinstance(dashboard_data, dict):
        raise WorkspaceError("Invalid workspace dashboard configuration.")
    raw_goal = dashboard_data.get("annual_goal")
    if raw_goal is None:
        return DashboardConfig()
    try:
        goal = Decimal(str(raw_goal))
    except InvalidOperation as exc:
        raise WorkspaceError("dashboard.annual_goal must be a number.") from exc
    if not goal.is_finite() or goal <= 0:
        raise WorkspaceError("dashboard.annual_goal must be a positive number.")
    return DashboardConfig(annual_goal=goal)


def _parse_logging(logging_data: Any) -> LoggingConfig:
    if logging_data is None:
        return LoggingConfig()
    if not isinstance(logging_data, dict):
        raise WorkspaceError("Invalid workspace logging configuration.")
    return LoggingConfig(
        level=str(logging_data.get("level") or "INFO").upper(),
        json=bool(logging_data.get("json", False)),
    )
