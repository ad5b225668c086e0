# Copyright (c) Microsoft. All rights reserved.

"""Chat endpoint relaying messages to the AI Foundry agent."""

import logging

import azure.functions as func

from routes.cors import json_response, preflight_response
from services import (
    ChatProxyService,
    ChatRequest,
    ChatResponse,
    ClientError,
    ProxyAttr,
    Settings,
    http_request_span,
    validation_span,
)

bp = func.Blueprint()

# Chat proxy service (lazy singleton)
_proxy: ChatProxyService | None = None


def get_proxy() -> ChatProxyService:
    """Get or create the chat proxy service instance."""
    global _proxy
    if _proxy is None:
        _proxy = ChatProxyService(Settings.from_env())
        logging.info(
            "Initialized chat proxy service - AI client will be created on first request"
        )
    return _proxy


@bp.route(route="chat", methods=["POST", "OPTIONS"])
async def chat(req: func.HttpRequest) -> func.HttpResponse:
    """
    Send a message to the agent and get its reply.

    Request:
        POST /api/chat
        Body: {"message": "Hello", "threadId": "thread_xxx"}

    Response:
        200 OK
        {
            "threadId": "thread_xxx",
            "message": "Hi! How can I help?",
            "agentName": "AI in A Box",
            "timestamp": "..."
        }
    """
    if req.method == "OPTIONS":
        return preflight_response()

    async with http_request_span("POST", "/chat") as span:
        proxy = get_proxy()
        agent_name = proxy.settings.agent_name

        try:
            async with validation_span("parse_chat_request"):
                body = req.get_json() if req.get_body() else {}
                chat_request = ChatRequest.model_validate(body)
        except ValueError:
            span.set_attribute("http.status_code", 400)
            return json_response(
                ChatResponse(error="Invalid JSON body", agent_name=agent_name).to_wire(),
                status_code=400,
            )

        if chat_request.thread_id:
            span.set_attribute(ProxyAttr.THREAD_ID, chat_request.thread_id)

        try:
            result = await proxy.process_message(chat_request.message, chat_request.thread_id)

            if isinstance(result, ClientError):
                span.set_attribute("http.status_code", 400)
                return json_response(
                    ChatResponse(error=result.reason, agent_name=agent_name).to_wire(),
                    status_code=400,
                )

            span.set_attribute(ProxyAttr.SIMULATED, result.simulated)
            logging.info(
                f"Processed message for thread {result.thread_id} "
                f"(simulated: {result.simulated})"
            )

            span.set_attribute("http.status_code", 200)
            return json_response(
                ChatResponse(
                    thread_id=result.thread_id,
                    message=result.text,
                    agent_name=agent_name,
                ).to_wire()
            )
        except Exception:
            logging.exception("Error processing chat request")
            span.set_attribute("http.status_code", 500)
            return json_response(
                ChatResponse(
                    error="An error occurred processing your request",
                    agent_name=agent_name,
                ).to_wire(),
                status_code=500,
            )
