"""Load the demo principals and employees from database/seed.sql.

No credentials are seeded: an employee gets one by enrolling through
``/webauthn/register/*`` (see scripts/ceremony_demo.py).
"""
from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.manpower_hub.manpower_hub.database.bootstrap import apply_seed_sql, table_counts


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")

    counts = table_counts(db_config, ("users", "employees", "webauthn_credentials"))
    print(
        f"OK: seeded {db_config.get('database')} -> "
        f"users={counts['users']} employees={counts['employees']} "
        f"enrolled credentials={counts['webauthn_credentials']}"
    )


if __name__ == "__main__":
    main()
