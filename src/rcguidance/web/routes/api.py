"""
REST API routes for the development server.

Mirrors the guidance server endpoints the client talks to:
- POST /api/initialize
- POST /api/image
- GET  /api/get_times
"""

import json
import logging
from datetime import datetime

from flask import Blueprint, current_app, jsonify, request

logger = logging.getLogger(__name__)

bp = Blueprint("api", __name__)

INITIALIZE_FIELDS = (
    "number_of_route_markers",
    "number_of_cars",
    "marker_size_cm",
    "camera_matrix",
    "dist_coeffs",
)


@bp.route("/initialize", methods=["POST"])
def initialize():
    """
    Start a new session.

    Returns:
        JSON status, 400 if a form field is missing or malformed
    """
    missing = [f for f in INITIALIZE_FIELDS if not request.form.get(f)]
    if missing:
        return jsonify({"error": f"Missing fields: {', '.join(missing)}"}), 400

    for field in ("camera_matrix", "dist_coeffs"):
        try:
            json.loads(request.form[field])
        except json.JSONDecodeError:
            return jsonify({"error": f"{field} is not valid JSON"}), 400

    state = current_app.config["DEV_STATE"]
    state.reset({f: request.form[f] for f in INITIALIZE_FIELDS})
    logger.info(
        f"Session initialized: cars={request.form['number_of_cars']}, "
        f"markers={request.form['number_of_route_markers']}"
    )
    return jsonify({"status": "ok"})


@bp.route("/image", methods=["POST"])
def image():
    """
    Receive one frame.

    Returns:
        JSON with the running frame count, 400 without an "image" file
    """
    upload = request.files.get("image")
    if upload is None:
        return jsonify({"error": "No image provided"}), 400

    state = current_app.config["DEV_STATE"]
    frames_received = state.record_frame()

    frames_dir = current_app.config["FRAMES_DIRECTORY"]
    if frames_dir is not None:
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        upload.save(frames_dir / f"{stamp}_{upload.filename}")

    return jsonify({"status": "ok", "frames_received": frames_received})


@bp.route("/get_times")
def get_times():
    """
    Return configured completion times.

    Returns:
        JSON object of id -> token, or {"finish": "<blob>"} when nesting is enabled
    """
    state = current_app.config["DEV_STATE"]
    if state.nest_finish and state.times:
        blob = ", ".join(f"{key}: {value}" for key, value in state.times.items())
        return jsonify({"finish": "{" + blob + "}"})
    return jsonify(state.times)
