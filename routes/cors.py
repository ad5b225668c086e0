# Copyright (c) Microsoft. All rights reserved.

"""JSON responses carrying the CORS headers the browser client needs."""

import json

import azure.functions as func

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def json_response(body: dict, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(
        body=json.dumps(body),
        status_code=status_code,
        mimetype="application/json",
        headers=dict(CORS_HEADERS),
    )


def preflight_response() -> func.HttpResponse:
    """Answer a CORS preflight (OPTIONS) request."""
    return func.HttpResponse(status_code=200, headers=dict(CORS_HEADERS))
