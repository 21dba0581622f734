"""Cross-origin headers for the HTTP API."""

from __future__ import annotations

from flask import Flask, Response, request

_ORIGIN_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, GET, PUT, OPTIONS",
    "Access-Control-Allow-Headers": (
        "Authorization, Content-Length, X-CSRF-Token, token, session, X-Requested-With"
    ),
    "Access-Control-Expose-Headers": (
        "Content-Length, Access-Control-Allow-Origin, Access-Control-Allow-Headers"
    ),
    "Access-Control-Max-Age": "172800",
    "Access-Control-Allow-Credentials": "true",
}

_PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": (
        "Content-Type,AccessToken, X-CSRF-Token, Authorization, token, X-Requested-With"
    ),
    "Access-Control-Allow-Methods": "POST, GET, PUT, OPTIONS",
    "Access-Control-Expose-Headers": (
        "Content-Length, Access-Control-Allow-Origin, Access-Control-Allow-Headers, Content-Type"
    ),
    "Access-Control-Allow-Credentials": "true",
}


def cors_headers(method: str, origin: str) -> dict[str, str]:
    """Return the headers to add to a response for this method and Origin."""
    headers: dict[str, str] = {}
    if origin:
        headers.update(_ORIGIN_HEADERS)
    if method == "OPTIONS":
        headers.update(_PREFLIGHT_HEADERS)
    return headers


def install_cors(app: Flask) -> Flask:
    """Answer preflight requests with 204 and add CORS headers to every response."""

    @app.before_request
    def _preflight() -> Response | None:
        if request.method == "OPTIONS":
            return app.response_class(status=204)
        return None

    @app.after_request
    def _apply(response: Response) -> Response:
        for name, value in cors_headers(request.method, request.headers.get("Origin", "")).items():
            response.headers[name] = value
        return response

    return app