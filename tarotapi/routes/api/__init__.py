from flask import Blueprint, jsonify

# GENERIC Error


def error(status=400, detail="Bad Request", **extra):
    return jsonify({"error": detail, **extra}), status


endpoints = Blueprint("endpoints", __name__)
import tarotapi.routes.api.admin  # noqa: E402, F401
import tarotapi.routes.api.auth  # noqa: E402, F401
