"""
Reentry Pathway
Blueprint helpers shared by the API blueprints.
"""

import logging

from flask import request

from pathway.core.exceptions import (
    ConcurrentModificationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceUnavailableError,
    ValidationError,
)
from pathway.models.participant import Actor
from pathway.utils.errors import E, api_error

logger = logging.getLogger(__name__)

PERSISTENCE_RETRY_AFTER_SECONDS = 5


def paginate_items(items, default_limit=200, max_limit=1000):
    """Apply limit/offset pagination to an in-memory list.

    Query params:
        limit  — max items (default 200, capped at max_limit)
        offset — starting position (default 0)

    Returns:
        (items_page, total_count)
    """
    total = len(items)
    try:
        limit = min(int(request.args.get("limit", default_limit)), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    return items[offset:offset + limit], total


def resolve_actor(data: dict | None = None):
    """Acting user from the JSON body or the X-User-Id / X-User-Name headers.

    Returns (actor, None) or (None, error_response).
    """
    data = data or {}
    user_id = (data.get("user_id") or request.headers.get("X-User-Id") or "").strip()
    user_name = (data.get("user_name") or request.headers.get("X-User-Name") or user_id).strip()
    if not user_id:
        return None, api_error(E.VALIDATION_REQUIRED, "user_id is required",
                               details={"user_id": "required"})
    return Actor(user_id=user_id, user_name=user_name), None


def register_error_handlers(bp):
    """Map engine exceptions to standard JSON error responses on ``bp``."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(error))

    @bp.errorhandler(InvalidTransitionError)
    def _handle_invalid_transition(error: InvalidTransitionError):
        return api_error(E.INVALID_TRANSITION, str(error), details={
            "event": error.event,
            "current_status": error.current_status,
        })

    @bp.errorhandler(ConcurrentModificationError)
    def _handle_concurrent(error: ConcurrentModificationError):
        return api_error(E.CONCURRENT_MODIFICATION,
                         "The record was changed by someone else; reload and try again")

    @bp.errorhandler(PersistenceUnavailableError)
    def _handle_unavailable(error: PersistenceUnavailableError):
        logger.error("Persistence unavailable at endpoint=%s: %s", request.endpoint, error)
        return api_error(E.PERSISTENCE_UNAVAILABLE, "Storage temporarily unavailable",
                         headers={"Retry-After": str(PERSISTENCE_RETRY_AFTER_SECONDS)})
