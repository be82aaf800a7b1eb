"""Drive a full time-in against a running server with a software authenticator.

Usage: python scripts/ceremony_demo.py [SUBJECT_ID] [EMPLOYEE_ID]
(defaults are the seeded demo employee). The server must run with the same
WEBAUTHN_ORIGIN as the current settings module. The authenticator lives in
memory, so use an employee that has no credential yet.
"""
from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.manpower_hub.manpower_hub.client.http import CeremonyApi
from src.manpower_hub.manpower_hub.client.orchestrator import CeremonyOrchestrator
from src.manpower_hub.manpower_hub.client.soft_authenticator import SoftwareAuthenticator

DEMO_SUBJECT = "8f6b1d4e-0c55-4e0c-9a40-4b1c2f7d0002"
DEMO_EMPLOYEE = "EMP-0001"


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    settings = importlib.import_module(get_settings_module())
    subject_id = sys.argv[1] if len(sys.argv) > 1 else DEMO_SUBJECT
    employee_id = sys.argv[2] if len(sys.argv) > 2 else DEMO_EMPLOYEE

    orchestrator = CeremonyOrchestrator(
        CeremonyApi(settings.WEBAUTHN_ORIGIN),
        SoftwareAuthenticator(),
        origin=settings.WEBAUTHN_ORIGIN,
        consent=lambda subject, scope: input(f"Register a biometric for {scope or subject}? [y/N] ").lower() == "y",
    )
    ok = orchestrator.perform_gated_action("/attendance/time-in", subject_id, employee_id)
    print("OK: timed in" if ok else "FAILED: time-in denied")
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
