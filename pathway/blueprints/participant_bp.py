"""
Participant Blueprint — reentry lifecycle API.

Endpoints:
  Participants:   GET/POST /participants, GET/DELETE /participants/<id>
                  GET  /participants/<id>/transitions
                  POST /participants/<id>/status
                  POST /participants/<id>/notes
                  PATCH /participants/<id>/contact-info
  Bridge team:    POST /participants/<id>/contact
                  POST /participants/<id>/bridge-follow-up
                  POST /participants/<id>/assign-bridge
                  POST /participants/bulk/move-to-mentorship
  Leaders:        POST /participants/<id>/assign-mentor
                  POST /participants/<id>/assign-leader
                  POST /participants/bulk/assign-mentor
                  POST /participants/<id>/graduate
                  POST /participants/merge
  Mentors:        POST /participants/<id>/initial-contact
                  POST /participants/<id>/weekly-update
                  POST /participants/<id>/monthly-update
                  POST /participants/<id>/monthly-check-in
                  POST /participants/<id>/monthly-report
                  POST /participants/<id>/graduation-steps
  Reporting:      GET  /participants/duplicates
                  GET  /participants/overdue
                  GET  /participants/metrics
                  GET  /participants/metrics/bridge

Every mutating route needs an acting user (body user_id/user_name or the
X-User-Id / X-User-Name headers). The service owns all business logic.
"""

from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, request

from pathway.blueprints import paginate_items, register_error_handlers, resolve_actor
from pathway.models.forms import (
    BridgeFollowUpForm,
    ContactForm,
    InitialContactForm,
    MonthlyCheckInForm,
    MonthlyReportForm,
    MonthlyUpdateForm,
    WeeklyUpdateForm,
)
from pathway.models.graduation import graduation_progress
from pathway.services import metrics
from pathway.services.due_date_sweep import sweep
from pathway.utils.errors import E, api_error

logger = logging.getLogger(__name__)

participant_bp = Blueprint("participant", __name__, url_prefix="/api/v1")
register_error_handlers(participant_bp)


def _svc():
    return current_app.extensions["participant_service"]


def _body() -> dict:
    return request.get_json(silent=True) or {}


def _participant_json(participant) -> dict:
    out = participant.to_dict()
    out["graduationProgress"] = graduation_progress(participant.completed_graduation_steps)
    return out


def _id_list(data: dict):
    ids = data.get("participant_ids")
    if not isinstance(ids, list) or not ids or not all(isinstance(i, str) for i in ids):
        return None, api_error(E.VALIDATION_REQUIRED, "participant_ids must be a non-empty list",
                               details={"participant_ids": "required"})
    return ids, None


# ═════════════════════════════════════════════════════════════════════════
# Participants
# ═════════════════════════════════════════════════════════════════════════


@participant_bp.route("/participants", methods=["POST"])
def create_participant():
    """Submit an intake form. The acting user is optional (public intake)."""
    data = _body()
    actor, _ = resolve_actor(data)
    participant_id = _svc().add_participant(data, actor)
    return jsonify(_participant_json(_svc().get_participant_by_id(participant_id))), 201


@participant_bp.route("/participants", methods=["GET"])
def list_participants():
    """Query params: status, queue (bridge | mentor_leader), mentor_id, limit, offset."""
    svc = _svc()
    queue = request.args.get("queue")
    mentor_id = request.args.get("mentor_id")
    if queue == "bridge":
        items = svc.list_for_bridge_team()
    elif queue == "mentor_leader":
        items = svc.list_for_mentor_leader()
    elif queue:
        return api_error(E.VALIDATION_INVALID, f"Unknown queue: {queue}",
                         details={"queue": "must be bridge or mentor_leader"})
    elif mentor_id:
        items = svc.list_for_mentor(mentor_id)
    else:
        items = svc.list_participants(request.args.get("status"))

    page, total = paginate_items(items)
    return jsonify({"items": [_participant_json(p) for p in page], "total": total})


@participant_bp.route("/participants/<participant_id>", methods=["GET"])
def get_participant(participant_id):
    return jsonify(_participant_json(_svc().get_participant_by_id(participant_id)))


@participant_bp.route("/participants/<participant_id>", methods=["DELETE"])
def delete_participant(participant_id):
    actor, err = resolve_actor(_body())
    if err:
        return err
    _svc().delete_participant(participant_id, actor)
    return jsonify({"deleted": True, "id": participant_id})


@participant_bp.route("/participants/<participant_id>/transitions", methods=["GET"])
def available_transitions(participant_id):
    return jsonify(_svc().available_events(participant_id))


@participant_bp.route("/participants/<participant_id>/status", methods=["POST"])
def update_status(participant_id):
    """Body: { status, details?, user_id, user_name }"""
    data = _body()
    actor, err = resolve_actor(data)
    if err:
        return err
    if not data.get("status"):
        return api_error(E.VALIDATION_REQUIRED, "status is required", details={"status": "required"})
    participant = _svc().update_participant_status(participant_id, data["status"], actor,
                                                   details=data.get("details"))
    return jsonify(_participant_json(participant))


@participant_bp.route("/participants/<participant_id>/notes", methods=["POST"])
def add_note(participant_id):
    data = _body()
    actor, err = resolve_actor(data)
    if err:
        return err
    participant = _svc().add_note(participant_id, data.get("content") or "", actor)
    return jsonify(_participant_json(participant)), 201


@participant_bp.route("/participants/<participant_id>/contact-info", methods=["PATCH"])
def update_contact_info(participant_id):
    data = _body()
    actor, err = resolve_actor(data)
    if err:
        return err
    participant = _svc().update_contact_info(
        participant_id, actor,
        phone_number=data.get("phone_number"),
        email=data.get("email"),
    )
    return jsonify(_participant_json(participant))


# ═════════════════════════════════════════════════════════════════════════
# Forms
# ═════════════════════════════════════════════════════════════════════════

# route suffix → (form class, service method name)
_FORM_ROUTES = {
    "contact": (ContactForm, "record_contact"),
    "bridge-follow-up": (BridgeFollowUpForm, "record_bridge_follow_up"),
    "initial-contact": (InitialContactForm, "record_initial_contact"),
    "weekly-update": (WeeklyUpdateForm, "record_weekly_update"),
    "monthly-update": (MonthlyUpdateForm, "record_monthly_update"),
    "monthly-check-in": (MonthlyCheckInForm, "record_monthly_check_in"),
    "monthly-report": (MonthlyReportForm, "submit_monthly_report"),
}


def submit_form(participant_id, form_name):
    """Parse the named form and hand it to the matching service operation."""
    data = _body()
    actor, err = resolve_actor(data)
    if err:
        return err
    form_cls, method = _FORM_ROUTES[form_name]
    form = form_cls.from_dict(participant_id, data)
    participant = getattr(_svc(), method)(form, actor)
    return jsonify(_participant_json(participant))


for _suffix in _FORM_ROUTES:
    participant_bp.add_url_rule(
        f"/participants/<participant_id>/{_suffix}",
        endpoint=f"submit_{_suffix.replace('-', '_')}",
        view_func=submit_form,
        methods=["POST"],
        defaults={"form_name": _suffix},
    )


# ═════════════════════════════════════════════════════════════════════════
# Assignment & graduation
# ═════════════════════════════════════════════════════════════════════════


@participant_bp.route("/participants/<participant_id>/assign-mentor", methods=["POST"])
def assign_mentor(participant_id):
    """Body: { mentor_id, user_id, user_name }"""
    data = _body()
    actor, err = resolve_actor(data)
    if err:
        return err
    participant = _svc().assign_to_mentor(participant_id, data.get("mentor_id") or "", actor)
    return jsonify(_participant_json(participant))


@participant_bp.route("/participants/<participant_id>/assign-bridge", methods=["POST"])
def assign_bridge(participant_id):
    data = _body()
    actor, err = resolve_actor(data)
    if err:
        return err
    if not data.get("assignee_id"):
        return api_error(E.VALIDATION_REQUIRED, "assignee_id is required",
                         details={"assignee_id": "required"})
    participant = _svc().assign_to_bridge_team(participant_id, data["assignee_id"], actor)
    return jsonify(_participant_json(participant))


@participant_bp.route("/participants/<participant_id>/assign-leader", methods=["POST"])
def assign_leader(participant_id):
    data = _body()
    actor, err = resolve_actor(data)
    if err:
        return err
    if not data.get("assignee_id"):
        return api_error(E.VALIDATION_REQUIRED, "assignee_id is required",
                         details={"assignee_id": "required"})
    participant = _svc().assign_to_mentor_leader(participant_id, data["assignee_id"], actor)
    return jsonify(_participant_json(participant))


@participant_bp.route("/participants/<participant_id>/graduation-steps", methods=["POST"])
def complete_graduation_step(participant_id):
    data = _body()
    actor, err = resolve_actor(data)
    if err:
        return err
    if not data.get("step_id"):
        return api_error(E.VALIDATION_REQUIRED, "step_id is required", details={"step_id": "required"})
    participant = _svc().add_completed_graduation_step(participant_id, data["step_id"], actor)
    return jsonify(_participant_json(participant))


@participant_bp.route("/participants/<participant_id>/graduate", methods=["POST"])
def graduate(participant_id):
    data = _body()
    actor, err = resolve_actor(data)
    if err:
        return err
    participant = _svc().approve_graduation(participant_id, actor, notes=data.get("notes"))
    return jsonify(_participant_json(participant))


# ═════════════════════════════════════════════════════════════════════════
# Merge & bulk operations
# ═════════════════════════════════════════════════════════════════════════


@participant_bp.route("/participants/merge", methods=["POST"])
def merge_participants():
    """Body: { source_id, target_id, user_id, user_name }"""
    data = _body()
    actor, err = resolve_actor(data)
    if err:
        return err
    source_id, target_id = data.get("source_id"), data.get("target_id")
    if not source_id or not target_id:
        return api_error(E.VALIDATION_REQUIRED, "source_id and target_id are required",
                         details={"source_id": "required", "target_id": "required"})
    participant = _svc().merge_participants(source_id, target_id, actor)
    return jsonify(_participant_json(participant))


@participant_bp.route("/participants/bulk/move-to-mentorship", methods=["POST"])
def bulk_move_to_mentorship():
    data = _body()
    actor, err = resolve_actor(data)
    if err:
        return err
    ids, err = _id_list(data)
    if err:
        return err
    return jsonify(_svc().bulk_move_to_mentorship(ids, actor))


@participant_bp.route("/participants/bulk/assign-mentor", methods=["POST"])
def bulk_assign_mentor():
    data = _body()
    actor, err = resolve_actor(data)
    if err:
        return err
    ids, err = _id_list(data)
    if err:
        return err
    return jsonify(_svc().bulk_assign_to_mentor(ids, data.get("mentor_id") or "", actor))


# ═════════════════════════════════════════════════════════════════════════
# Reporting
# ═════════════════════════════════════════════════════════════════════════


@participant_bp.route("/participants/duplicates", methods=["GET"])
def find_duplicates():
    """Query params: phone, email (at least one)."""
    phone, email = request.args.get("phone"), request.args.get("email")
    if not phone and not email:
        return api_error(E.VALIDATION_REQUIRED, "phone or email is required")
    svc = _svc()
    matches = {p.id: p for p in svc.find_duplicates_by_phone(phone)}
    matches.update({p.id: p for p in svc.find_duplicates_by_email(email)})
    return jsonify({"items": [_participant_json(p) for p in matches.values()], "total": len(matches)})


@participant_bp.route("/participants/overdue", methods=["GET"])
def overdue():
    svc = _svc()
    return jsonify(sweep(svc.list_participants(), svc.clock.now(),
                         mentor_id=request.args.get("mentor_id")))


@participant_bp.route("/participants/metrics", methods=["GET"])
def dashboard_metrics():
    return jsonify(metrics.status_counts(_svc().list_participants()))


@participant_bp.route("/participants/metrics/bridge", methods=["GET"])
def bridge_metrics():
    """Query params: month (1-12), year. Default: the current month."""
    svc = _svc()
    now = svc.clock.now()
    month = request.args.get("month", default=now.month, type=int)
    year = request.args.get("year", default=now.year, type=int)
    if not 1 <= month <= 12:
        return api_error(E.VALIDATION_INVALID, "month must be between 1 and 12",
                         details={"month": "invalid"})
    if not 1 <= year <= 9999:
        return api_error(E.VALIDATION_INVALID, "year must be between 1 and 9999",
                         details={"year": "invalid"})
    report = metrics.bridge_team_metrics(svc.list_participants(), month, year)
    if report is None:
        return jsonify({"month": month, "year": year, "metrics": None,
                        "reason": "months before November 2025 are reported manually"})
    return jsonify(report)
