"""
CWMP endpoint. Mounted at ``/`` on the standalone ACS app and at ``/acs``
on the operator app.
"""
from __future__ import annotations

import hmac

from flask import Blueprint, Response, current_app, request

from .engine import CwmpEngine
from . import rpc

acs_bp = Blueprint("acs", __name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Authorization, Content-Type, SOAPAction",
}


def _authorized() -> bool:
    if not current_app.config.get("ACS_REQUIRE_AUTH", True):
        return True
    auth = request.authorization
    if auth is None or auth.type != "basic":
        return False
    expected_user = str(current_app.config.get("ACS_USERNAME") or "")
    expected_pass = str(current_app.config.get("ACS_PASSWORD") or "")
    return hmac.compare_digest(str(auth.username or ""), expected_user) and hmac.compare_digest(
        str(auth.password or ""), expected_pass
    )


def _xml(body: str, status: int = 200) -> Response:
    response = Response(body, status=status, mimetype="text/xml")
    response.headers["Content-Type"] = "text/xml; charset=utf-8"
    return response


@acs_bp.route("/", methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"])
def cwmp():
    if request.method == "OPTIONS":
        return Response(status=200, headers=CORS_HEADERS)
    if request.method != "POST":
        return Response("Method Not Allowed", status=405, headers={"Allow": "POST, OPTIONS"})

    if not _authorized():
        current_app.logger.warning("CWMP auth failed from %s", request.remote_addr)
        return Response(
            "Unauthorized",
            status=401,
            headers={"WWW-Authenticate": 'Basic realm="ACS"'},
        )

    max_bytes = int(current_app.config.get("ACS_MAX_BODY_BYTES") or 1024 * 1024)
    if request.content_length is not None and request.content_length > max_bytes:
        return _xml(rpc.build_soap_fault("Client", "Request body too large"))

    reply = CwmpEngine().handle(request.get_data(cache=False))
    if reply.status == 204:
        return Response(status=204)
    return _xml(reply.body, reply.status)
