"""
Work order API routes.

Thin adapters: parse the request, run a lifecycle command as the logged-in
actor, and serialize the result. Lifecycle errors are rendered by the error
handler registered in ``facilityops.api.helpers``.
"""
from flask import current_app, g, jsonify, request, send_from_directory

from facilityops.api import api_bp
from facilityops.api.helpers import json_body
from facilityops.auth.utils import login_required
from facilityops.lifecycle import (
    AddCommentCommand,
    AddPartCommand,
    AssignWorkOrderCommand,
    CloseWorkOrderCommand,
    CreateWorkOrderCommand,
    ReviewCompletionCommand,
    SubmitCompletionCommand,
    UnassignWorkOrderCommand,
    UpdatePartCommand,
    UpdateWorkOrderCommand,
)
from facilityops.lifecycle.queries import get_work_order_detail, list_work_orders
from facilityops.logging_config import get_logger
from facilityops.storage.photo_store import LocalPhotoStore

logger = get_logger(__name__)


@api_bp.route("/health", methods=["GET"])
def health():
    return jsonify({'ok': True})


# ==============================================================================
# Work orders
# ==============================================================================

@api_bp.route("/work-orders", methods=["GET"])
@login_required
def get_work_orders():
    mine = request.args.get("mine") == "1"
    work_orders = list_work_orders(g.identity, status=request.args.get("status") or None, mine=mine)
    return jsonify([wo.to_dict() for wo in work_orders])


@api_bp.route("/work-orders", methods=["POST"])
@login_required
def create_work_order():
    data = json_body()
    result = CreateWorkOrderCommand(
        identity=g.identity,
        site_id=data.get("site_id"),
        location_id=data.get("location_id"),
        title=data.get("title"),
        description=data.get("description"),
        priority=data.get("priority") or "normal",
        due_at=data.get("due_at"),
    ).execute()
    return jsonify(result.to_dict()), 201


@api_bp.route("/work-orders/<int:work_order_id>", methods=["GET"])
@login_required
def get_work_order(work_order_id):
    return jsonify(get_work_order_detail(g.identity, work_order_id).to_dict())


@api_bp.route("/work-orders/<int:work_order_id>", methods=["PATCH"])
@login_required
def update_work_order(work_order_id):
    result = UpdateWorkOrderCommand(
        identity=g.identity,
        work_order_id=work_order_id,
        changes=json_body(),
    ).execute()
    return jsonify(result.to_dict())


@api_bp.route("/work-orders/<int:work_order_id>/close", methods=["POST"])
@login_required
def close_work_order(work_order_id):
    result = CloseWorkOrderCommand(identity=g.identity, work_order_id=work_order_id).execute()
    return jsonify(result.to_dict())


# ==============================================================================
# Parts
# ==============================================================================

@api_bp.route("/work-orders/<int:work_order_id>/parts", methods=["POST"])
@login_required
def add_part(work_order_id):
    data = json_body()
    result = AddPartCommand(
        identity=g.identity,
        work_order_id=work_order_id,
        name=data.get("name"),
        quantity=data.get("quantity", 1),
        is_required=data.get("is_required", True),
        vendor=data.get("vendor"),
        sku_or_link=data.get("sku_or_link"),
        notes=data.get("notes"),
    ).execute()
    return jsonify(result.to_dict()), 201


@api_bp.route("/work-orders/<int:work_order_id>/parts/<int:part_id>", methods=["PATCH"])
@login_required
def update_part(work_order_id, part_id):
    result = UpdatePartCommand(
        identity=g.identity,
        work_order_id=work_order_id,
        part_id=part_id,
        changes=json_body(),
    ).execute()
    return jsonify(result.to_dict())


# ==============================================================================
# Assignment
# ==============================================================================

@api_bp.route("/work-orders/<int:work_order_id>/assign", methods=["POST"])
@login_required
def assign_work_order(work_order_id):
    data = json_body()
    result = AssignWorkOrderCommand(
        identity=g.identity,
        work_order_id=work_order_id,
        assignee_id=data.get("assignee_id"),
        force=data.get("force", False),
    ).execute()
    return jsonify(result.to_dict()), 201


@api_bp.route("/work-orders/<int:work_order_id>/assignment", methods=["DELETE"])
@login_required
def unassign_work_order(work_order_id):
    result = UnassignWorkOrderCommand(identity=g.identity, work_order_id=work_order_id).execute()
    return jsonify(result.to_dict())


# ==============================================================================
# Comments
# ==============================================================================

@api_bp.route("/work-orders/<int:work_order_id>/comments", methods=["POST"])
@login_required
def add_comment(work_order_id):
    data = json_body()
    result = AddCommentCommand(
        identity=g.identity,
        work_order_id=work_order_id,
        message=data.get("message"),
    ).execute()
    return jsonify(result.to_dict()), 201


# ==============================================================================
# Completions
# ==============================================================================

@api_bp.route("/completions/<int:work_order_id>/submit", methods=["POST"])
@login_required
def submit_completion(work_order_id):
    """
    Multipart form: minutes_worked, completion_notes, photos (one or more files).

    Photos are stored before the command runs and removed again if the
    submission is rejected.
    """
    files = [f for f in request.files.getlist("photos") if f and f.filename]
    store = LocalPhotoStore.from_config(current_app.config)
    photo_refs = []

    try:
        for f in files:
            photo_refs.append(store.save(f))

        result = SubmitCompletionCommand(
            identity=g.identity,
            work_order_id=work_order_id,
            minutes_worked=request.form.get("minutes_worked"),
            notes=request.form.get("completion_notes"),
            photo_refs=photo_refs,
        ).execute()
    except Exception:
        store.discard(photo_refs)
        raise
    return jsonify(result.to_dict()), 201


@api_bp.route("/completions/<int:work_order_id>/review/<int:completion_id>", methods=["POST"])
@login_required
def review_completion(work_order_id, completion_id):
    data = json_body()
    result = ReviewCompletionCommand(
        identity=g.identity,
        work_order_id=work_order_id,
        completion_id=completion_id,
        decision=data.get("decision"),
        review_notes=data.get("review_notes"),
    ).execute()
    return jsonify(result.to_dict())


@api_bp.route("/uploads/<path:filename>", methods=["GET"])
@login_required
def serve_upload(filename):
    return send_from_directory(current_app.config["UPLOAD_DIR"], filename)
