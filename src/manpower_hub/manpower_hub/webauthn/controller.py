from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import json_api, json_body
from ..common.validators import optional_str, require_non_empty
from ..container import Container
from ..core.exceptions import CeremonyError, MalformedAssertionError, MalformedAttestationError
from .model import AssertionResponse, RegistrationResponse, parse_ceremony_request


def _subject_and_scope(data: dict):
    return (
        require_non_empty(data.get("subject_id"), "subject_id"),
        optional_str(data.get("scope_entity_id"), "scope_entity_id"),
    )


def register(app: Flask, container: Container) -> None:
    issuer = container.challenge_issuer

    def parse_or_discard(data: dict, response_cls, error_cls):
        # A body that cannot be parsed still burns the subject's challenge.
        subject_id = require_non_empty(data.get("subject_id"), "subject_id")
        try:
            return parse_ceremony_request(data, error_cls), response_cls.from_json(data)
        except CeremonyError:
            issuer.discard(subject_id)
            raise

    @app.route("/webauthn/register/options", methods=["POST"], endpoint="webauthn_register_options")
    @json_api
    def register_options():
        subject_id, scope_entity_id = _subject_and_scope(json_body())
        return jsonify(issuer.registration_options(subject_id, scope_entity_id))

    @app.route("/webauthn/register/verify", methods=["POST"], endpoint="webauthn_register_verify")
    @json_api
    def register_verify():
        req, response = parse_or_discard(json_body(), RegistrationResponse, MalformedAttestationError)
        container.registration_verifier.verify_registration(
            req.subject_id, response, req.challenge, req.scope_entity_id
        )
        return jsonify({"success": True})

    @app.route("/webauthn/auth/options", methods=["POST"], endpoint="webauthn_auth_options")
    @json_api
    def auth_options():
        subject_id, scope_entity_id = _subject_and_scope(json_body())
        return jsonify(issuer.authentication_options(subject_id, scope_entity_id))

    @app.route("/webauthn/auth/verify", methods=["POST"], endpoint="webauthn_auth_verify")
    @json_api
    def auth_verify():
        req, response = parse_or_discard(json_body(), AssertionResponse, MalformedAssertionError)
        ok = container.assertion_verifier.verify_assertion(
            req.subject_id, response, req.challenge, req.scope_entity_id
        )
        return jsonify({"success": bool(ok)})

    @app.route("/webauthn/credentials/status", methods=["POST"], endpoint="webauthn_credentials_status")
    @json_api
    def credentials_status():
        subject_id, scope_entity_id = _subject_and_scope(json_body())
        return jsonify({"exists": issuer.credential_exists(subject_id, scope_entity_id)})
