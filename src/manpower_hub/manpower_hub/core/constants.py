"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_CHALLENGE_BYTES = 32
MIN_CHALLENGE_BYTES = 16
DEFAULT_AUTHENTICATOR_TIMEOUT_MS = 60_000
DEFAULT_CHALLENGE_TTL_SECONDS = 120
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0
DEFAULT_TIME_IN_LATE_THRESHOLD = "08:30:00"

# WebAuthn wire constants
CREDENTIAL_TYPE = "public-key"
CLIENT_DATA_TYPE_CREATE = "webauthn.create"
CLIENT_DATA_TYPE_GET = "webauthn.get"
ATTESTATION_CONVEYANCE = "none"
AUTHENTICATOR_ATTACHMENT = "platform"

# COSE algorithm identifiers offered at registration, in preference order.
COSE_ALG_ES256 = -7
COSE_ALG_EDDSA = -8
COSE_ALG_RS256 = -257
SUPPORTED_COSE_ALGORITHMS = (COSE_ALG_ES256, COSE_ALG_EDDSA, COSE_ALG_RS256)

MAX_SIGN_COUNT = 0xFFFFFFFF
