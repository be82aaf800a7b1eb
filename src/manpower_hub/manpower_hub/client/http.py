from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from ..core.constants import DEFAULT_HTTP_TIMEOUT_SECONDS
from ..core.exceptions import (
    CeremonyError,
    CeremonyTimeoutError,
    NotAuthorizedForEntityError,
    NotFoundError,
    TransportError,
)

logger = logging.getLogger(__name__)

_STATUS_ERRORS = {
    403: NotAuthorizedForEntityError,
    404: NotFoundError,
}


class CeremonyApi:
    """Thin ``requests`` client for the ``/webauthn`` endpoints.

    Every call is bounded by ``timeout`` seconds; a ceremony is never left
    waiting on the network.
    """

    def __init__(
        self,
        base_url: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ):
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = float(timeout)

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            resp = self._session.post(url, json=payload, timeout=self._timeout)
        except requests.Timeout as e:
            raise CeremonyTimeoutError(f"POST {path} timed out after {self._timeout:g}s") from e
        except requests.RequestException as e:
            raise TransportError(f"POST {path} failed: {e}") from e

        try:
            body = resp.json()
        except ValueError as e:
            raise TransportError(f"POST {path} answered {resp.status_code} without JSON") from e
        if not isinstance(body, dict):
            raise TransportError(f"POST {path} answered a non-object body")

        if resp.status_code >= 400:
            message = str(body.get("error") or resp.reason or resp.status_code)
            error_cls = _STATUS_ERRORS.get(resp.status_code, CeremonyError)
            logger.info("POST %s -> %s %s", path, resp.status_code, message)
            err = error_cls(message)
            err.public_message = message
            raise err
        return body

    def credential_exists(self, subject_id: str, scope_entity_id: Optional[str] = None) -> bool:
        body = self._post("/webauthn/credentials/status", _subject(subject_id, scope_entity_id))
        return bool(body.get("exists"))

    def registration_options(self, subject_id: str, scope_entity_id: Optional[str] = None) -> Dict[str, Any]:
        return self._post("/webauthn/register/options", _subject(subject_id, scope_entity_id))

    def verify_registration(self, payload: Dict[str, Any]) -> bool:
        return self._post("/webauthn/register/verify", payload).get("success") is True

    def authentication_options(self, subject_id: str, scope_entity_id: Optional[str] = None) -> Dict[str, Any]:
        return self._post("/webauthn/auth/options", _subject(subject_id, scope_entity_id))

    def verify_authentication(self, payload: Dict[str, Any], *, path: str = "/webauthn/auth/verify") -> bool:
        """Submit an assertion, to the verify endpoint or to a gated action."""
        return self._post(path, payload).get("success") is True


def _subject(subject_id: str, scope_entity_id: Optional[str]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"subject_id": subject_id}
    if scope_entity_id is not None:
        payload["scope_entity_id"] = scope_entity_id
    return payload
