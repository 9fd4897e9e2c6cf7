# Overview: Request decorators for API routes.

from functools import wraps

from flask import g, jsonify, request

from .extensions import db
from .models import Company


def require_company(f):
    """
    Establish the tenant context from the X-Company-Id header.

    Sets g.company_id. Identity and permissions are resolved upstream; this
    only rejects requests without a known company (400 / 404).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = request.headers.get("X-Company-Id", "").strip()
        if not raw.isdigit():
            return jsonify({"error": "X-Company-Id header is required"}), 400

        company_id = int(raw)
        if db.session.get(Company, company_id) is None:
            return jsonify({"error": f"Company {company_id} not found"}), 404

        g.company_id = company_id
        return f(*args, **kwargs)

    return decorated_function
