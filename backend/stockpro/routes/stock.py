# Overview: HTTP routes for store item balances and stock breakdowns.

"""
Stock balance API routes.
"""
from flask import Blueprint, current_app, g, jsonify

from ..decorators import require_company
from ..errors import StockError
from ..services import stock_service
from ..services.catalog_service import get_item, get_store


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stores")


@stock_bp.route("/<int:store_id>/items/<int:item_id>/balance", methods=["GET"])
@require_company
def get_balance(store_id: int, item_id: int):
    """
    Balance of an item in a store.

    Returns:
        200: {"store_id", "item_id", "exists_in_store", "balance", "available_qty"}
        404: Store or item not found in the company
    """
    try:
        get_store(store_id, g.company_id)
        get_item(item_id, g.company_id)
        return jsonify(stock_service.get_balance_info(store_id, item_id)), 200
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to compute balance")
        return jsonify({"error": "Internal server error"}), 500


@stock_bp.route("/<int:store_id>/items/<int:item_id>/stock", methods=["GET"])
@require_company
def get_stock_breakdown(store_id: int, item_id: int):
    """
    Every component of the balance (opening, vouchers, legacy documents).
    """
    try:
        get_store(store_id, g.company_id)
        get_item(item_id, g.company_id)
        return jsonify(stock_service.get_balance_breakdown(store_id, item_id)), 200
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to compute stock breakdown")
        return jsonify({"error": "Internal server error"}), 500
