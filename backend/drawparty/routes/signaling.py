from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from ..dispatch import dispatch

bp = Blueprint("signaling", __name__)


@bp.post("/signaling")
def signaling():
    payload = request.get_json(silent=True)
    body, status = dispatch(current_app.extensions["drawparty"], payload)
    return jsonify(body), status
