"""
Guidance Task Blueprint.

Endpoints:
    GET  /api/v1/guidance-tasks               — list (status, mentor_id, participant_id)
    GET  /api/v1/guidance-tasks/<id>          — single task
    POST /api/v1/guidance-tasks/<id>/complete — leader response
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from pathway.blueprints import paginate_items, register_error_handlers, resolve_actor
from pathway.models.guidance import GuidanceStatus
from pathway.utils.errors import E, api_error

logger = logging.getLogger(__name__)

guidance_bp = Blueprint("guidance", __name__, url_prefix="/api/v1/guidance-tasks")
register_error_handlers(guidance_bp)


def _dispatcher():
    return current_app.extensions["guidance_dispatcher"]


@guidance_bp.route("", methods=["GET"])
def list_tasks():
    dispatcher = _dispatcher()
    mentor_id = request.args.get("mentor_id")
    participant_id = request.args.get("participant_id")
    status = request.args.get("status")

    if mentor_id:
        tasks = dispatcher.list_for_mentor(mentor_id)
    elif participant_id:
        tasks = dispatcher.list_for_participant(participant_id)
    else:
        tasks = dispatcher.list_all()

    if status:
        try:
            wanted = GuidanceStatus(status)
        except ValueError:
            return api_error(E.VALIDATION_INVALID, f"Unknown status: {status}",
                             details={"status": "must be pending or completed"})
        tasks = [t for t in tasks if t.status == wanted]

    page, total = paginate_items(tasks)
    return jsonify({"items": [t.to_dict() for t in page], "total": total})


@guidance_bp.route("/<task_id>", methods=["GET"])
def get_task(task_id):
    return jsonify(_dispatcher().get(task_id).to_dict())


@guidance_bp.route("/<task_id>/complete", methods=["POST"])
def complete_task(task_id):
    """Body: { response, follow_up_notes?, user_id, user_name }"""
    data = request.get_json(silent=True) or {}
    actor, err = resolve_actor(data)
    if err:
        return err
    task = _dispatcher().complete(
        task_id, actor.user_id, actor.user_name,
        data.get("response") or "",
        follow_up_notes=data.get("follow_up_notes"),
    )
    return jsonify(task.to_dict())
