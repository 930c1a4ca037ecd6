"""Dependency injection for FastAPI endpoints"""

from typing import Callable

from fastapi import Depends, Header, Request

from spurz_engine.infrastructure.database.session import session_scope
from spurz_engine.services.refresh import SessionScope, SnapshotRefresher


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_owner_id(x_user_id: str = Header(..., min_length=1)) -> str:
    """Owner id asserted by the outer identity layer"""
    return x_user_id


def get_session_scope() -> Callable:
    """Session factory for work that outlives the request (background tasks)"""
    return session_scope


def get_refresher(scope: SessionScope = Depends(get_session_scope)) -> SnapshotRefresher:
    return SnapshotRefresher(scope)
