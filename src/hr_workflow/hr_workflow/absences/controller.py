from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import api_view, json_body
from ..common.validators import optional_date, optional_positive_int, require_enum
from ..container import Container
from ..core.enums import RequestType
from .model import RequestFilter


def register(app: Flask, container: Container) -> None:
    service = container.absence_service

    def _rows(requests) -> list[dict]:
        return [r.to_dict() for r in requests]

    @app.route("/absence-requests", methods=["POST"], endpoint="create_absence_request")
    @api_view
    def create_absence_request(actor):
        data = json_body()
        created = service.create(
            actor=actor,
            employee_id=data.get("employee_id") or actor.user_id,
            request_type=data.get("request_type"),
            incidence_type_id=data.get("incidence_type_id"),
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            reason=data.get("reason", ""),
            total_days=data.get("total_days"),
            details=data,
            custom_fields=data.get("custom_fields"),
        )
        return jsonify({"success": True, "requestId": created.request_id}), 201

    @app.route("/absence-requests/my-requests", methods=["GET"], endpoint="my_absence_requests")
    @api_view
    def my_absence_requests(actor):
        include_archived = request.args.get("include_archived", "").lower() in {"1", "true", "yes"}
        rows = service.list_my_requests(actor=actor, include_archived=include_archived)
        return jsonify({"success": True, "requests": _rows(rows)})

    @app.route("/absence-requests/pending/<stage>", methods=["GET"], endpoint="pending_absence_requests")
    @api_view
    def pending_absence_requests(actor, stage: str):
        rows = service.list_pending_for_stage(actor=actor, stage=stage)
        return jsonify({"success": True, "requests": _rows(rows)})

    @app.route("/absence-requests/counts", methods=["GET"], endpoint="absence_request_counts")
    @api_view
    def absence_request_counts(actor):
        return jsonify({"success": True, **service.pending_counts(actor=actor)})

    @app.route("/absence-requests/overlapping", methods=["GET"], endpoint="overlapping_absences")
    @api_view
    def overlapping_absences(actor):
        result = service.find_overlaps(
            actor=actor,
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            employee_id=request.args.get("employee_id"),
            exclude_request_id=request.args.get("exclude_request_id"),
        )
        return jsonify({"success": True, **result.to_dict()})

    @app.route("/absence-requests/approved", methods=["GET"], endpoint="approved_absence_requests")
    @api_view
    def approved_absence_requests(actor):
        args = request.args
        raw_type = args.get("request_type")
        request_filter = RequestFilter(
            employee_id=optional_positive_int(args.get("employee_id"), "employee_id"),
            request_type=require_enum(RequestType, raw_type, "request_type") if raw_type else None,
            starts_on_or_after=optional_date(args.get("start_date"), "start_date"),
            ends_on_or_before=optional_date(args.get("end_date"), "end_date"),
            include_archived=True,
        )
        rows = service.list_approved(actor=actor, request_filter=request_filter)
        return jsonify({"success": True, "requests": _rows(rows)})

    @app.route("/absence-requests/<int:request_id>", methods=["GET"], endpoint="get_absence_request")
    @api_view
    def get_absence_request(actor, request_id: int):
        req, history = service.get_request(actor=actor, request_id=request_id)
        return jsonify({"success": True, "request": req.to_dict(), "history": [h.to_dict() for h in history]})

    @app.route("/absence-requests/<int:request_id>/approve", methods=["POST"], endpoint="decide_absence_request")
    @api_view
    def decide_absence_request(actor, request_id: int):
        data = json_body()
        updated = service.decide(
            actor=actor,
            request_id=request_id,
            stage=data.get("stage"),
            action=data.get("action"),
            comments=data.get("comments"),
        )
        return jsonify(
            {
                "success": True,
                "status": updated.status.value,
                "current_approval_stage": updated.current_approval_stage.value,
            }
        )

    @app.route("/absence-requests/<int:request_id>", methods=["DELETE"], endpoint="delete_absence_request")
    @api_view
    def delete_absence_request(actor, request_id: int):
        service.delete(actor=actor, request_id=request_id)
        return jsonify({"success": True})

    @app.route("/absence-requests/<int:request_id>/archive", methods=["PATCH"], endpoint="archive_absence_request")
    @api_view
    def archive_absence_request(actor, request_id: int):
        service.archive(actor=actor, request_id=request_id)
        return jsonify({"success": True})
