"""
FastAPI dependencies for the objects built once in create_app().
"""
from typing import Optional

from fastapi import HTTPException, Request

from wfn24.api_client import FootballApiClient
from wfn24.db import Database
from wfn24.live.publisher import RelayPublisher


def get_db(request: Request) -> Database:
    return request.app.state.database


def get_api_client(request: Request) -> FootballApiClient:
    """API-Football client; 503 when FOOTBALL_API_KEY was not configured."""
    client: Optional[FootballApiClient] = request.app.state.api_client
    if client is None:
        raise HTTPException(status_code=503, detail="Football data API is not configured")
    return client


def get_publisher(request: Request) -> RelayPublisher:
    return request.app.state.publisher
