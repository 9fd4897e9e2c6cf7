# Overview: HTTP routes for physical inventory counts and posting.

"""
Physical inventory count API routes.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_company
from ..errors import StockError
from ..extensions import db
from ..services import count_service
from ..validation import (
    ValidationError,
    parse_count_lines,
    parse_date,
    parse_int,
    parse_optional_int,
    require_object,
)


counts_bp = Blueprint("counts", __name__, url_prefix="/api/counts")


@counts_bp.route("", methods=["POST"])
@require_company
def create_count():
    """
    Create a new count document (status: PENDING).

    Request body:
    {
        "store_id": int,
        "user_id": int,
        "branch_id": int (optional),
        "date": ISO-8601 (optional),
        "notes": str (optional),
        "items": [{"item_id": int, "actual_stock": int,
                   "system_stock": int (optional), "cost_cents": int (optional)}]
    }

    Returns:
        201: Count created
        400: Invalid request
        404: Store, user or item not found
    """
    try:
        data = require_object(request.get_json(silent=True))

        count = count_service.create_count(
            company_id=g.company_id,
            store_id=parse_int(data.get("store_id"), "store_id"),
            user_id=parse_int(data.get("user_id"), "user_id"),
            branch_id=parse_optional_int(data.get("branch_id"), "branch_id"),
            items=parse_count_lines(data.get("items")),
            date=parse_date(data.get("date")),
            notes=data.get("notes"),
        )

        db.session.commit()

        return jsonify(count_service.get_count_summary(count.id, g.company_id)), 201

    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except StockError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create count")
        return jsonify({"error": "Internal server error"}), 500


@counts_bp.route("", methods=["GET"])
@require_company
def list_counts():
    """
    List counts, newest first.

    Query params: store_id, status (PENDING / POSTED), limit
    """
    try:
        counts = count_service.list_counts(
            g.company_id,
            store_id=parse_optional_int(request.args.get("store_id"), "store_id"),
            status=request.args.get("status"),
            limit=min(parse_optional_int(request.args.get("limit"), "limit", minimum=1) or 200, 1000),
        )
        return jsonify({"items": [c.to_dict() for c in counts]}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@counts_bp.route("/<int:count_id>", methods=["GET"])
@require_company
def get_count(count_id: int):
    """Count header, lines and variance totals."""
    try:
        return jsonify(count_service.get_count_summary(count_id, g.company_id)), 200
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code


@counts_bp.route("/<int:count_id>", methods=["PUT"])
@require_company
def update_count(count_id: int):
    """
    Replace a PENDING count's lines and/or notes/date.

    Returns:
        200: Count updated
        409: Count is POSTED
    """
    try:
        data = require_object(request.get_json(silent=True))

        items = data.get("items")
        count_service.update_count(
            count_id,
            company_id=g.company_id,
            items=parse_count_lines(items) if items is not None else None,
            date=parse_date(data.get("date")),
            notes=data.get("notes"),
        )

        db.session.commit()

        return jsonify(count_service.get_count_summary(count_id, g.company_id)), 200

    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except StockError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update count")
        return jsonify({"error": "Internal server error"}), 500


@counts_bp.route("/<int:count_id>", methods=["DELETE"])
@require_company
def delete_count(count_id: int):
    try:
        count_service.delete_count(count_id, company_id=g.company_id)
        db.session.commit()
        return jsonify({"deleted": True, "id": count_id}), 200
    except StockError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete count")
        return jsonify({"error": "Internal server error"}), 500


@counts_bp.route("/<int:count_id>/post", methods=["POST"])
@require_company
def post_count(count_id: int):
    """
    Post a count: create the surplus receipt and shortage issue vouchers.

    Returns:
        200: Count posted
        400: Shortage exceeds the store's balance (count stays PENDING)
        404: Count not found
        409: Count already posted
    """
    try:
        count_service.post_count(count_id, company_id=g.company_id)

        db.session.commit()

        return jsonify(count_service.get_count_summary(count_id, g.company_id)), 200

    except StockError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to post count")
        return jsonify({"error": "Internal server error"}), 500
