# Copyright (c) Microsoft. All rights reserved.

"""Health check endpoint."""

import logging
from datetime import datetime, timezone

import azure.functions as func

from routes.chat import get_proxy
from routes.cors import json_response, preflight_response
from services import HealthReporter, http_request_span

bp = func.Blueprint()


@bp.route(route="health", methods=["GET", "OPTIONS"])
async def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """
    Health check endpoint for monitoring.

    Request:
        GET /api/health

    Response:
        200 OK
        {"status": "Healthy", "connectionStatus": "Connected - ...", "details": {...}, ...}

        503 Service Unavailable
        {"status": "Unhealthy", "error": "Health check failed", "details": {...}, ...}
    """
    if req.method == "OPTIONS":
        return preflight_response()

    logging.info("Health check request received")

    async with http_request_span("GET", "/health") as span:
        try:
            proxy = get_proxy()
            reporter = HealthReporter(proxy.settings, proxy.connection)
            healthy, body = await reporter.check()
        except Exception as e:
            logging.exception("Error during health check")
            healthy = False
            body = {
                "status": "Unhealthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "error": "Health check failed",
                "details": {
                    "exception": type(e).__name__,
                    "message": str(e),
                },
            }

        status_code = 200 if healthy else 503
        span.set_attribute("http.status_code", status_code)
        return json_response(body, status_code=status_code)
