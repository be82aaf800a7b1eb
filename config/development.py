import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "manpower_hub"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo data on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

# Relying party. The origin must be the exact scheme://host[:port] the browser sees.
WEBAUTHN_RP_ID = os.getenv("WEBAUTHN_RP_ID", "localhost")
WEBAUTHN_RP_NAME = os.getenv("WEBAUTHN_RP_NAME", "Manpower Hub")
WEBAUTHN_ORIGIN = os.getenv("WEBAUTHN_ORIGIN", "http://localhost:5000")
WEBAUTHN_TIMEOUT_MS = int(os.getenv("WEBAUTHN_TIMEOUT_MS", "60000"))
WEBAUTHN_CHALLENGE_TTL_SECONDS = int(os.getenv("WEBAUTHN_CHALLENGE_TTL_SECONDS", "120"))
WEBAUTHN_USER_VERIFICATION = os.getenv("WEBAUTHN_USER_VERIFICATION", "required")
WEBAUTHN_ALLOW_REREGISTRATION = bool(int(os.getenv("WEBAUTHN_ALLOW_REREGISTRATION", "0")))

TIME_IN_LATE_THRESHOLD = os.getenv("TIME_IN_LATE_THRESHOLD", "08:30:00")
