"""Ride acceptance endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...schemas.acceptance import AcceptanceConfigModel, RankRequest, RankResponse, ScoreRequest
from ...services.acceptance.engine import AcceptanceEngine
from ...services.outputs.formatter import batch_result_to_response, scored_ride_to_json
from ...services.acceptance.models import ScoredRide
from ..dependencies import get_engine

router = APIRouter(prefix="/acceptance", tags=["acceptance"])


@router.get("/config", response_model=AcceptanceConfigModel, status_code=status.HTTP_200_OK)
def acceptance_config(engine: AcceptanceEngine = Depends(get_engine)) -> AcceptanceConfigModel:
    return AcceptanceConfigModel.model_validate(engine.options.as_record())


@router.post("/rank", response_model=RankResponse, status_code=status.HTTP_200_OK)
async def rank_rides(payload: RankRequest, engine: AcceptanceEngine = Depends(get_engine)) -> RankResponse:
    """Score every ride for the driver and return them best match first."""
    try:
        options = engine.options.with_overrides(payload.options.to_overrides() if payload.options else None)
        rides = [ride.to_domain() for ride in payload.rides]
        driver = payload.driver.to_domain()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        result = await engine.process_batch(rides, driver, options)
        return batch_result_to_response(result)
    except Exception as exc:
        logging.exception(f"Error ranking rides: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to rank rides: {str(exc)}"
        ) from exc


@router.post("/score", status_code=status.HTTP_200_OK)
async def score_ride(payload: ScoreRequest, engine: AcceptanceEngine = Depends(get_engine)) -> dict:
    """Score a single ride for the driver."""
    try:
        options = engine.options.with_overrides(payload.options.to_overrides() if payload.options else None)
        ride = payload.ride.to_domain()
        driver = payload.driver.to_domain()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    acceptance = await engine.score(ride, driver, options)
    if acceptance.rank == 0:
        acceptance.rank = 1
    return scored_ride_to_json(ScoredRide(ride=ride, acceptance=acceptance))
