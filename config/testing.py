import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "manpower_hub_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

WEBAUTHN_RP_ID = "localhost"
WEBAUTHN_RP_NAME = "Manpower Hub (test)"
WEBAUTHN_ORIGIN = "http://localhost:5000"
WEBAUTHN_TIMEOUT_MS = 60000
WEBAUTHN_CHALLENGE_TTL_SECONDS = 120
WEBAUTHN_USER_VERIFICATION = "required"
WEBAUTHN_ALLOW_REREGISTRATION = False

TIME_IN_LATE_THRESHOLD = "08:30:00"
