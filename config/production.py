import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "manpower_hub"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

# No defaults for the relying party: a wrong origin silently breaks every ceremony.
WEBAUTHN_RP_ID = os.getenv("WEBAUTHN_RP_ID", "")
WEBAUTHN_RP_NAME = os.getenv("WEBAUTHN_RP_NAME", "Manpower Hub")
WEBAUTHN_ORIGIN = os.getenv("WEBAUTHN_ORIGIN", "")
WEBAUTHN_TIMEOUT_MS = int(os.getenv("WEBAUTHN_TIMEOUT_MS", "60000"))
WEBAUTHN_CHALLENGE_TTL_SECONDS = int(os.getenv("WEBAUTHN_CHALLENGE_TTL_SECONDS", "120"))
WEBAUTHN_USER_VERIFICATION = os.getenv("WEBAUTHN_USER_VERIFICATION", "required")
WEBAUTHN_ALLOW_REREGISTRATION = bool(int(os.getenv("WEBAUTHN_ALLOW_REREGISTRATION", "0")))

TIME_IN_LATE_THRESHOLD = os.getenv("TIME_IN_LATE_THRESHOLD", "08:30:00")
