# Copyright (c) Microsoft. All rights reserved.

"""
AI Foundry Chat Proxy - Azure Functions Application

Lets a browser chat client talk to an Azure AI Foundry agent without holding
Azure credentials. The Function App authenticates with managed identity (or
local developer credentials), relays each message to the agent, polls the
agent run to completion and returns the reply.

Key Features:
- Azure Functions HTTP triggers for chat, thread creation and health
- Run polling with retry and exponential backoff
- Simulation fallback when the Agent Service is unreachable
- OpenTelemetry observability with custom spans
"""

import azure.functions as func

from services import init_observability
from routes import chat_bp, threads_bp, health_bp

# Initialize observability once at startup
init_observability()

# Create the Function App and register blueprints
app = func.FunctionApp(http_auth_level=func.AuthLevel.ANONYMOUS)
app.register_functions(chat_bp)
app.register_functions(threads_bp)
app.register_functions(health_bp)
