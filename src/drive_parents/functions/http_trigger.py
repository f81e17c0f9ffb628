"""HTTP trigger blueprint — health check, request message and sign-in callback endpoints."""

import json
import logging

import azure.functions as func

from drive_parents import __version__
from drive_parents.config import load_config
from drive_parents.errors import ResolverError
from drive_parents.messaging.dispatcher import MessageDispatcher
from drive_parents.resolution.engine import ResolutionEngine, resolution_engine_from_config

logger = logging.getLogger(__name__)

bp = func.Blueprint()

# One engine per worker process so the in-memory credential outlives a request.
_engine: ResolutionEngine | None = None


def _get_engine() -> ResolutionEngine:
    global _engine
    if _engine is None:
        _engine = resolution_engine_from_config(load_config())
        logger.info("[http_trigger] resolution engine created")
    return _engine


@bp.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """Health check endpoint.

    Returns service status and version.
    """
    logger.info("[health_check] health check requested")

    try:
        body = json.dumps({"status": "ok", "version": __version__})
        return func.HttpResponse(body, status_code=200, mimetype="application/json")

    except Exception:
        logger.error("[health_check] health check failed", exc_info=True)
        error_body = json.dumps({"status": "error", "message": "Internal server error"})
        return func.HttpResponse(error_body, status_code=500, mimetype="application/json")


@bp.route(route="messages", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def handle_message(req: func.HttpRequest) -> func.HttpResponse:
    """Message endpoint — dispatches one request to the resolution engine.

    The body is a JSON request object with a ``type`` tag. Handled requests,
    including failed resolutions, return 200 with a tagged
    ``{success, data | error}`` body.
    """
    try:
        message = req.get_json()
    except ValueError:
        logger.warning("[handle_message] request body is not valid JSON")
        error_body = json.dumps({"success": False, "error": "Request body must be JSON"})
        return func.HttpResponse(error_body, status_code=400, mimetype="application/json")

    try:
        response = MessageDispatcher(_get_engine()).dispatch(message)
        body = json.dumps(response.to_dict())
        return func.HttpResponse(body, status_code=200, mimetype="application/json")

    except Exception:
        logger.error("[handle_message] message handling failed", exc_info=True)
        error_body = json.dumps({"success": False, "error": "Internal server error"})
        return func.HttpResponse(error_body, status_code=500, mimetype="application/json")


@bp.route(route="auth/callback", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def auth_callback(req: func.HttpRequest) -> func.HttpResponse:
    """Sign-in callback — Google redirects the user's browser here after consent.

    Exchanges the authorization code for a token and stores it. The response
    is a short plain-text page for the user.
    """
    error = req.params.get("error")
    code = req.params.get("code")
    state = req.params.get("state")

    if error:
        logger.warning("[auth_callback] sign-in declined; error:%s", error)
        return func.HttpResponse(f"Sign-in was not completed: {error}", status_code=400)
    if not code or not state:
        logger.warning("[auth_callback] callback missing code or state")
        return func.HttpResponse("Missing authorization code or state", status_code=400)

    try:
        _get_engine().provider.complete_sign_in(code, state)

    except ResolverError as exc:
        logger.warning("[auth_callback] sign-in failed; error:%s", exc.kind.value)
        return func.HttpResponse(f"Sign-in failed: {exc.message}", status_code=400)

    except Exception:
        logger.error("[auth_callback] sign-in callback failed", exc_info=True)
        return func.HttpResponse("Internal server error", status_code=500)

    logger.info("[auth_callback] sign-in completed")
    return func.HttpResponse(
        "Signed in to Google Drive. You can close this window.", status_code=200
    )
