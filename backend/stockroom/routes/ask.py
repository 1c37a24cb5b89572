# Overview: Flask API route for natural-language questions.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_role
from ..errors import error_response, GenerationError, QueryFailed, TimedOut
from ..services import ask_service
from ..validation import ValidationError


ask_bp = Blueprint("ask", __name__)


@ask_bp.post("/ask")
@require_auth
@require_role("ASK_QUESTION")
def ask_route():
    """
    Answer a question about the store's data.

    Request body: {"question": "What were total sales last week?"}
    Returns: {"result": [...rows], "sqlQuery": "SELECT ..."}
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}

    try:
        answer = ask_service.get_bridge().ask(data.get("question"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except (GenerationError, QueryFailed, TimedOut) as e:
        current_app.logger.warning("Ask failed: %s (%s)", e, getattr(e, "detail", None))
        return error_response(e)

    return jsonify(answer)
