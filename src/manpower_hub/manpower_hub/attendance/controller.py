from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import failure, json_api, json_body
from ..common.validators import require_non_empty
from ..container import Container
from ..core.exceptions import CeremonyError, MalformedAssertionError, ValidationError
from ..webauthn.model import AssertionResponse, parse_ceremony_request


def register(app: Flask, container: Container) -> None:
    def gated(action):
        """Run ``action(employee_id)`` only after an explicit successful assertion."""
        data = json_body()
        employee_id = require_non_empty(data.get("scope_entity_id"), "scope_entity_id")
        subject_id = require_non_empty(data.get("subject_id"), "subject_id")
        try:
            container.challenge_issuer.authorize_entity(subject_id, employee_id)
            req = parse_ceremony_request(data, MalformedAssertionError)
            response = AssertionResponse.from_json(data)
        except CeremonyError:
            container.challenge_issuer.discard(subject_id)
            raise

        ok = container.assertion_verifier.verify_assertion(
            req.subject_id, response, req.challenge, employee_id
        )
        if ok is not True:
            return failure("Biometric verification failed", 401)

        try:
            record = action(employee_id)
        except ValidationError as e:
            return failure(str(e), 409)
        return jsonify({"success": True, "attendance": record.to_json()})

    @app.route("/attendance/time-in", methods=["POST"], endpoint="attendance_time_in")
    @json_api
    def time_in():
        return gated(container.attendance_service.time_in)

    @app.route("/attendance/time-out", methods=["POST"], endpoint="attendance_time_out")
    @json_api
    def time_out():
        return gated(container.attendance_service.time_out)

    @app.route("/attendance/<employee_id>/today", methods=["GET"], endpoint="attendance_today")
    @json_api
    def today(employee_id: str):
        record = container.attendance_service.get_today(employee_id)
        return jsonify({"attendance": record.to_json() if record else None})
