"""Standardised API error responses.

Usage
-----
    from launch_engine.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "LaunchProject not found")
    return api_error(E.VALIDATION_REQUIRED, "doc_ids is required")
    return api_error(E.STATE_BLOCKED, "Phase blocked", details={"blocking_items": [...]})
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants.

    Convention:
     • ERR_  prefix for every application error
    """

    # Malformed request – HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Business-rule failure – HTTP 422
    VALIDATION_RULE = "ERR_VALIDATION_RULE"
    INVALID_DOCUMENT = "ERR_INVALID_DOCUMENT"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # State – HTTP 409
    CONFLICT_STATE = "ERR_CONFLICT_STATE"
    STATE_BLOCKED = "ERR_STATE_PHASE_BLOCKED"
    STATE_FINAL = "ERR_STATE_ALREADY_FINAL"

    # Store – HTTP 503 (retryable)
    STORE_UNAVAILABLE = "ERR_STORE_UNAVAILABLE"

    # Server – HTTP 500
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.VALIDATION_RULE: 422,
    E.INVALID_DOCUMENT: 422,
    E.NOT_FOUND: 404,
    E.CONFLICT_STATE: 409,
    E.STATE_BLOCKED: 409,
    E.STATE_FINAL: 409,
    E.STORE_UNAVAILABLE: 503,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (blocking items, offending fields, etc.).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def register_error_handlers(bp) -> None:
    """Translate service exceptions into api_error responses for a blueprint."""
    from launch_engine.core.exceptions import (
        AlreadyFinalError,
        InvalidDocumentError,
        NotFoundError,
        PhaseBlockedError,
        StateError,
        StoreError,
        ValidationError,
    )

    @bp.errorhandler(NotFoundError)
    def _not_found(exc):
        return api_error(E.NOT_FOUND, str(exc))

    @bp.errorhandler(InvalidDocumentError)
    def _invalid_document(exc):
        return api_error(E.INVALID_DOCUMENT, str(exc), details=exc.details)

    @bp.errorhandler(ValidationError)
    def _validation(exc):
        return api_error(E.VALIDATION_RULE, str(exc), details=exc.details)

    @bp.errorhandler(PhaseBlockedError)
    def _blocked(exc):
        return api_error(E.STATE_BLOCKED, str(exc), details=exc.details)

    @bp.errorhandler(AlreadyFinalError)
    def _final(exc):
        return api_error(E.STATE_FINAL, str(exc), details=exc.details)

    @bp.errorhandler(StateError)
    def _state(exc):
        return api_error(E.CONFLICT_STATE, str(exc), details=exc.details)

    @bp.errorhandler(StoreError)
    def _store(exc):
        return api_error(E.STORE_UNAVAILABLE, str(exc), details={"operation": exc.operation, "retryable": True})
