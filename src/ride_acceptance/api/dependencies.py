"""Accessors for the per-process services created by the application factory."""

from __future__ import annotations

from fastapi import Request

from ..services.acceptance.engine import AcceptanceEngine
from ..services.distance.resolver import DistanceResolver


def get_resolver(request: Request) -> DistanceResolver:
    return request.app.state.resolver


def get_engine(request: Request) -> AcceptanceEngine:
    return request.app.state.engine
