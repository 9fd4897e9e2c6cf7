# Overview: HTTP routes for receipt, issue and transfer vouchers.

"""
Store voucher API routes (receipts, issues, transfers).

Request body for create/update:
{
    "store_id": int,                    // receipts and issues
    "from_store_id": int,               // transfers
    "to_store_id": int,                 // transfers
    "user_id": int,                     // create only
    "branch_id": int (optional),
    "date": ISO-8601 (optional),
    "notes": str (optional),
    "items": [{"item_id": int, "quantity": int, "unit_price_cents": int}]
}
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_company
from ..errors import StockError
from ..extensions import db
from ..services import (
    issue_voucher_service,
    receipt_voucher_service,
    transfer_voucher_service,
)
from ..validation import (
    ValidationError,
    parse_date,
    parse_int,
    parse_optional_int,
    parse_voucher_lines,
    require_object,
)


vouchers_bp = Blueprint("vouchers", __name__, url_prefix="/api/vouchers")


# kind -> (get, delete, list)
_READERS = {
    "receipts": (
        receipt_voucher_service.get_receipt_voucher,
        receipt_voucher_service.delete_receipt_voucher,
        receipt_voucher_service.list_receipt_vouchers,
    ),
    "issues": (
        issue_voucher_service.get_issue_voucher,
        issue_voucher_service.delete_issue_voucher,
        issue_voucher_service.list_issue_vouchers,
    ),
    "transfers": (
        transfer_voucher_service.get_transfer_voucher,
        transfer_voucher_service.delete_transfer_voucher,
        transfer_voucher_service.list_transfer_vouchers,
    ),
}


def _error(e: Exception, message: str):
    db.session.rollback()
    if isinstance(e, ValidationError):
        return jsonify({"error": str(e)}), 400
    if isinstance(e, StockError):
        return jsonify(e.to_dict()), e.status_code
    current_app.logger.exception(message)
    return jsonify({"error": "Internal server error"}), 500


def _common_fields(data: dict) -> dict:
    return {
        "items": parse_voucher_lines(data.get("items")),
        "date": parse_date(data.get("date")),
        "notes": data.get("notes"),
    }


# =============================================================================
# Create
# =============================================================================

@vouchers_bp.route("/receipts", methods=["POST"])
@require_company
def create_receipt():
    try:
        data = require_object(request.get_json(silent=True))
        voucher = receipt_voucher_service.create_receipt_voucher(
            company_id=g.company_id,
            store_id=parse_int(data.get("store_id"), "store_id"),
            user_id=parse_int(data.get("user_id"), "user_id"),
            branch_id=parse_optional_int(data.get("branch_id"), "branch_id"),
            **_common_fields(data),
        )
        db.session.commit()
        return jsonify(voucher.to_dict()), 201
    except Exception as e:
        return _error(e, "Failed to create receipt voucher")


@vouchers_bp.route("/issues", methods=["POST"])
@require_company
def create_issue():
    try:
        data = require_object(request.get_json(silent=True))
        voucher = issue_voucher_service.create_issue_voucher(
            company_id=g.company_id,
            store_id=parse_int(data.get("store_id"), "store_id"),
            user_id=parse_int(data.get("user_id"), "user_id"),
            branch_id=parse_optional_int(data.get("branch_id"), "branch_id"),
            **_common_fields(data),
        )
        db.session.commit()
        return jsonify(voucher.to_dict()), 201
    except Exception as e:
        return _error(e, "Failed to create issue voucher")


@vouchers_bp.route("/transfers", methods=["POST"])
@require_company
def create_transfer():
    try:
        data = require_object(request.get_json(silent=True))
        voucher = transfer_voucher_service.create_transfer_voucher(
            company_id=g.company_id,
            from_store_id=parse_int(data.get("from_store_id"), "from_store_id"),
            to_store_id=parse_int(data.get("to_store_id"), "to_store_id"),
            user_id=parse_int(data.get("user_id"), "user_id"),
            branch_id=parse_optional_int(data.get("branch_id"), "branch_id"),
            **_common_fields(data),
        )
        db.session.commit()
        return jsonify(voucher.to_dict()), 201
    except Exception as e:
        return _error(e, "Failed to create transfer voucher")


# =============================================================================
# Update (whole line set is replaced)
# =============================================================================

@vouchers_bp.route("/receipts/<int:voucher_id>", methods=["PUT"])
@require_company
def update_receipt(voucher_id: int):
    try:
        data = require_object(request.get_json(silent=True))
        voucher = receipt_voucher_service.update_receipt_voucher(
            voucher_id,
            company_id=g.company_id,
            store_id=parse_optional_int(data.get("store_id"), "store_id"),
            **_common_fields(data),
        )
        db.session.commit()
        return jsonify(voucher.to_dict()), 200
    except Exception as e:
        return _error(e, "Failed to update receipt voucher")


@vouchers_bp.route("/issues/<int:voucher_id>", methods=["PUT"])
@require_company
def update_issue(voucher_id: int):
    try:
        data = require_object(request.get_json(silent=True))
        voucher = issue_voucher_service.update_issue_voucher(
            voucher_id,
            company_id=g.company_id,
            store_id=parse_optional_int(data.get("store_id"), "store_id"),
            **_common_fields(data),
        )
        db.session.commit()
        return jsonify(voucher.to_dict()), 200
    except Exception as e:
        return _error(e, "Failed to update issue voucher")


@vouchers_bp.route("/transfers/<int:voucher_id>", methods=["PUT"])
@require_company
def update_transfer(voucher_id: int):
    try:
        data = require_object(request.get_json(silent=True))
        voucher = transfer_voucher_service.update_transfer_voucher(
            voucher_id,
            company_id=g.company_id,
            from_store_id=parse_optional_int(data.get("from_store_id"), "from_store_id"),
            to_store_id=parse_optional_int(data.get("to_store_id"), "to_store_id"),
            **_common_fields(data),
        )
        db.session.commit()
        return jsonify(voucher.to_dict()), 200
    except Exception as e:
        return _error(e, "Failed to update transfer voucher")


# =============================================================================
# Read / delete
# =============================================================================

@vouchers_bp.route("/<kind>", methods=["GET"])
@require_company
def list_vouchers(kind: str):
    if kind not in _READERS:
        return jsonify({"error": f"Unknown voucher type: {kind}"}), 404
    try:
        store_id = parse_optional_int(request.args.get("store_id"), "store_id")
        limit = parse_optional_int(request.args.get("limit"), "limit", minimum=1) or 200
        _get, _delete, list_fn = _READERS[kind]
        vouchers = list_fn(g.company_id, store_id=store_id, limit=min(limit, 1000))
        return jsonify({"items": [v.to_dict() for v in vouchers]}), 200
    except Exception as e:
        return _error(e, "Failed to list vouchers")


@vouchers_bp.route("/<kind>/<int:voucher_id>", methods=["GET"])
@require_company
def get_voucher(kind: str, voucher_id: int):
    if kind not in _READERS:
        return jsonify({"error": f"Unknown voucher type: {kind}"}), 404
    try:
        get_fn, _delete, _list = _READERS[kind]
        return jsonify(get_fn(voucher_id, g.company_id).to_dict()), 200
    except Exception as e:
        return _error(e, "Failed to get voucher")


@vouchers_bp.route("/<kind>/<int:voucher_id>", methods=["DELETE"])
@require_company
def delete_voucher(kind: str, voucher_id: int):
    if kind not in _READERS:
        return jsonify({"error": f"Unknown voucher type: {kind}"}), 404
    try:
        _get, delete_fn, _list = _READERS[kind]
        delete_fn(voucher_id, company_id=g.company_id)
        db.session.commit()
        return jsonify({"deleted": True, "id": voucher_id}), 200
    except Exception as e:
        return _error(e, "Failed to delete voucher")
