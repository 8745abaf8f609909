from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional

import yaml

DEFAULT_CONFIG: Dict[str, object] = {
    "store": "sqlite",
    "db_path": "duebook.db",
    "user_id": "local",
    "log_level": "WARNING",
    # monthly spending limit; 0 means no budget
    "budget": 0,
    "store_modules": {
        "sqlite": [
            "expense_tracker.database.SQLiteTemplateStore",
            "expense_tracker.database.SQLiteLedgerStore",
        ],
        "memory": [
            "expense_tracker.stores.memory.MemoryTemplateStore",
            "expense_tracker.stores.memory.MemoryLedgerStore",
        ],
    },
    "categories": [
        "food",
        "transport",
        "education",
        "entertainment",
        "shopping",
        "health",
        "bills",
        "other",
    ],
}

ENV_OVERRIDES = {
    "DUEBOOK_DB_PATH": "db_path",
    "DUEBOOK_USER": "user_id",
    "DUEBOOK_LOG_LEVEL": "log_level",
    "DUEBOOK_STORE": "store",
    "DUEBOOK_BUDGET": "budget",
}


def _merge_defaults(current: Dict[str, object], defaults: Dict[str, object]) -> Dict[str, object]:
    """Merge missing default keys into the current config recursively."""
    merged = dict(current)
    for key, value in defaults.items():
        if key not in merged:
            merged[key] = value
        elif isinstance(value, dict) and isinstance(merged[key], dict):
            merged[key] = _merge_defaults(merged[key], value)
    return merged


def load_config(path: Optional[Path] = None) -> Dict[str, object]:
    """Read a YAML config, fill in defaults, then apply DUEBOOK_* env vars."""
    data: Dict[str, object] = {}
    if path is not None and Path(path).exists():
        with Path(path).open("r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp) or {}
    config = _merge_defaults(data, DEFAULT_CONFIG)
    for env_name, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            config[key] = value
    if config["store"] not in config["store_modules"]:
        raise ValueError(
            f"Unknown store '{config['store']}'. "
            f"Expected one of: {', '.join(config['store_modules'])}."
        )
    config["budget"] = _parse_budget(config["budget"])
    return config


def _parse_budget(value) -> float:
    try:
        budget = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Budget must be a number, got {value!r}") from None
    if budget < 0:
        raise ValueError(f"Budget cannot be negative, got {value!r}")
    return budget


def save_config(config: Dict[str, object], path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fp:
        yaml.safe_dump(config, fp, sort_keys=False)
