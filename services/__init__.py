# Copyright (c) Microsoft. All rights reserved.

"""
Core modules for the AI Foundry chat proxy.

This package contains:
- settings: environment-driven configuration
- models: HTTP wire models
- foundry_client: async Agent Service client and its records
- connection: lazily initialized, process-wide agent connection
- run_poller: run status polling and reply extraction
- chat_proxy: message submission with retry and simulation fallback
- simulation: local canned-reply agent
- health: connection and identity diagnostics
- observability: OpenTelemetry instrumentation for tracing
"""

from services.chat_proxy import ChatProxyService, ChatReply, ClientError
from services.connection import AgentConnection
from services.health import HealthReporter
from services.models import ChatRequest, ChatResponse, CreateThreadResponse
from services.observability import (
    init_observability,
    http_request_span,
    agent_span,
    validation_span,
    ProxyAttr,
)
from services.settings import Settings

__all__ = [
    "ChatProxyService",
    "ChatReply",
    "ClientError",
    "AgentConnection",
    "HealthReporter",
    "ChatRequest",
    "ChatResponse",
    "CreateThreadResponse",
    "init_observability",
    "http_request_span",
    "agent_span",
    "validation_span",
    "ProxyAttr",
    "Settings",
]
