# Copyright (c) Microsoft. All rights reserved.

"""
Route blueprints for the AI Foundry chat proxy.

This package contains Azure Functions blueprints organized by resource:
- chat: send a message to the agent
- threads: create a conversation thread
- health: health check endpoint
"""

from routes.chat import bp as chat_bp
from routes.threads import bp as threads_bp
from routes.health import bp as health_bp

__all__ = ["chat_bp", "threads_bp", "health_bp"]
