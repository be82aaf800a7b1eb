class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class CeremonyError(DomainError):
    """Base class for failures of a biometric (WebAuthn) ceremony.

    Every ceremony failure is terminal for that ceremony: the caller has to
    request a fresh challenge to try again. ``public_message`` is what the
    HTTP layer is allowed to show; ``str(exc)`` may carry internal detail and
    only goes to the log.
    """

    code = "ceremony_failed"
    http_status = 400
    public_message = "Biometric verification failed"
    security_event = False


class NotFoundError(CeremonyError):
    """No principal / credential exists. Recoverable: triggers registration."""

    code = "not_found"
    http_status = 404
    public_message = "No biometric credential registered"


class ChallengeMismatchError(CeremonyError):
    code = "challenge_mismatch"
    public_message = "Challenge mismatch, request a new challenge"


class ChallengeExpiredError(CeremonyError):
    code = "challenge_expired"
    public_message = "Challenge expired, request a new challenge"


class OriginMismatchError(CeremonyError):
    code = "origin_mismatch"
    public_message = "Verification failed"
    security_event = True


class RPIDMismatchError(CeremonyError):
    code = "rp_id_mismatch"
    public_message = "Verification failed"
    security_event = True


class MalformedAttestationError(CeremonyError):
    code = "malformed_attestation"
    public_message = "Malformed registration response"


class MalformedAssertionError(CeremonyError):
    code = "malformed_assertion"
    public_message = "Malformed authentication response"


class InvalidSignatureError(CeremonyError):
    code = "invalid_signature"
    http_status = 401
    public_message = "Biometric verification failed"


class PossibleCloneDetectedError(CeremonyError):
    code = "possible_clone"
    http_status = 401
    public_message = "Biometric verification failed"
    security_event = True


class NotAuthorizedForEntityError(CeremonyError):
    code = "not_authorized_for_entity"
    http_status = 403
    public_message = "Credential is not bound to this employee"
    security_event = True


class AlreadyRegisteredError(CeremonyError):
    code = "already_registered"
    http_status = 409
    public_message = "A biometric credential is already registered"


class DuplicateCredentialError(CeremonyError):
    code = "duplicate_credential"
    http_status = 409
    public_message = "Credential already registered"


class UserCancelledError(CeremonyError):
    """The local authenticator prompt was dismissed or refused."""

    code = "user_cancelled"
    public_message = "Biometric prompt cancelled"


class CeremonyTimeoutError(CeremonyError):
    code = "timeout"
    http_status = 408
    public_message = "Biometric prompt timed out"


class TransportError(CeremonyError):
    """The server could not be reached or answered with garbage."""

    code = "transport_error"
    http_status = 502
    public_message = "Could not reach the verification server"
