# Copyright (c) Microsoft. All rights reserved.

"""Runtime settings for the AI Foundry chat proxy, read from environment variables."""

import os
from dataclasses import dataclass

DEFAULT_ENDPOINT = "https://ai-foundry-dev-eus.services.ai.azure.com/api/projects/firstProject"
DEFAULT_AGENT_ID = "asst_dH7M0nbmdRblhSQO8nIGIYF4"
DEFAULT_AGENT_NAME = "AI in A Box"


@dataclass(frozen=True)
class Settings:
    """Immutable settings shared by the routes and services."""

    endpoint: str = DEFAULT_ENDPOINT
    agent_id: str = DEFAULT_AGENT_ID
    agent_name: str = DEFAULT_AGENT_NAME
    workspace_name: str = "Unknown"
    managed_identity_client_id: str | None = None
    environment: str = "Unknown"
    version: str = "1.0.0"

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from the process environment, falling back to the documented defaults."""
        return cls(
            endpoint=os.environ.get("AI_FOUNDRY_ENDPOINT") or cls.endpoint,
            agent_id=os.environ.get("AI_FOUNDRY_AGENT_ID") or cls.agent_id,
            agent_name=os.environ.get("AI_FOUNDRY_AGENT_NAME") or cls.agent_name,
            workspace_name=os.environ.get("AI_FOUNDRY_WORKSPACE_NAME") or cls.workspace_name,
            managed_identity_client_id=os.environ.get("AZURE_CLIENT_ID") or None,
            environment=os.environ.get("AZURE_FUNCTIONS_ENVIRONMENT") or cls.environment,
            version=os.environ.get("APP_VERSION") or cls.version,
        )
