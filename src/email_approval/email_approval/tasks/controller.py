from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import api_key_required, error_response
from ..common.validators import Field, require_list, require_non_empty, validate_payload
from ..core.exceptions import DomainError
from ..container import Container

CREATE_TASK_FIELDS = (
    Field("title", "title", require_non_empty),
    Field("sourceModule", "source_module", require_non_empty),
    Field("sourceId", "source_id", lambda v, k: require_non_empty(str(v), k)),
    Field("assignedTo", "assigned_to", lambda v, k: require_non_empty(str(v), k)),
    Field("actions", "actions", require_list, required=False, default=("approve", "reject")),
)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/approval-tasks", methods=["POST"], endpoint="api_create_approval_task")
    @api_key_required
    def create_task():
        try:
            values = validate_payload(request.get_json(silent=True), CREATE_TASK_FIELDS)
            task_id = container.task_service.create_task(**values)
        except DomainError as e:
            return error_response(e)
        return jsonify({"success": True, "taskId": task_id}), 201

    @app.route("/api/approval-tasks/<int:task_id>", methods=["GET"], endpoint="api_get_approval_task")
    @api_key_required
    def get_task(task_id: int):
        try:
            task = container.task_service.get_task(task_id)
        except DomainError as e:
            return error_response(e)
        return jsonify(
            {
                "taskId": task.task_id,
                "title": task.title,
                "sourceModule": task.source_module,
                "sourceId": task.source_id,
                "assignedTo": task.assigned_to,
                "actions": list(task.actions),
                "status": task.status.value,
                "decidedBy": task.decided_by,
                "decidedAt": task.decided_at.isoformat() if task.decided_at else None,
                "remarks": task.remarks,
            }
        )
