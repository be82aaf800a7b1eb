"""Create the MySQL schema: principals, employees, WebAuthn credentials and
pending challenges, and attendance.

Exits non-zero when any table the ceremony needs is still missing afterwards.
"""
from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.manpower_hub.manpower_hub.database.bootstrap import REQUIRED_TABLES, apply_schema, missing_tables


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)
    target = f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"

    apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")

    missing = missing_tables(db_config)
    if missing:
        print(f"FAILED: {target} is missing {', '.join(missing)}")
        sys.exit(1)
    print(f"OK: {target} has {', '.join(REQUIRED_TABLES)}")


if __name__ == "__main__":
    main()
