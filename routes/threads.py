# Copyright (c) Microsoft. All rights reserved.

"""Thread management endpoints."""

import logging

import azure.functions as func

from routes.chat import get_proxy
from routes.cors import json_response, preflight_response
from services import CreateThreadResponse, ProxyAttr, http_request_span

bp = func.Blueprint()


@bp.route(route="createThread", methods=["POST", "OPTIONS"])
async def create_thread(req: func.HttpRequest) -> func.HttpResponse:
    """
    Create a new conversation thread.

    Falls back to a locally generated id when the Agent Service is unavailable.

    Request:
        POST /api/createThread

    Response:
        200 OK
        {"threadId": "thread_xxx"}
    """
    if req.method == "OPTIONS":
        return preflight_response()

    async with http_request_span("POST", "/createThread") as span:
        try:
            thread_id = await get_proxy().create_thread()
        except Exception:
            logging.exception("Error creating thread")
            span.set_attribute("http.status_code", 500)
            return json_response({"error": "Failed to create thread"}, status_code=500)

        logging.info(f"Created thread {thread_id}")

        span.set_attribute(ProxyAttr.THREAD_ID, thread_id)
        span.set_attribute("http.status_code", 200)
        return json_response(CreateThreadResponse(thread_id=thread_id).to_wire())
