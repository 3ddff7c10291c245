import uuid
from flask import g, request, current_app

def init_request_id(app):
    @app.before_request
    def _assign_request_id():
        # Trust a caller-supplied id only if it is short enough to log safely
        rid = request.headers.get("X-Request-Id", "")
        g.request_id = rid if 0 < len(rid) <= 64 else str(uuid.uuid4())

    @app.after_request
    def _add_request_id_header(response):
        if hasattr(g, "request_id"):
            response.headers["X-Request-Id"] = g.request_id
        current_app.logger.debug(
            "%s %s -> %s request_id=%s",
            request.method, request.path, response.status_code, getattr(g, "request_id", None),
        )
        return response
