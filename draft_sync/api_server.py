"""
FastAPI server for live draft sync.

Provides HTTP endpoints to set up a league, control syncing, enter picks
by hand and read sync status, the ledger and inflation.
"""

import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .api_serializers import (
    InflationResponse,
    InitializeDraftRequest,
    LeagueActionResponse,
    LedgerResponse,
    ManualPickRequest,
    SyncStatusResponse,
    SyncTriggerResponse,
    serialize_inflation,
    serialize_ledger,
    serialize_sync_status,
)
from .draft.ledger import DuplicatePlayerError, LedgerNotFoundError
from .service import DraftSyncService

logger = logging.getLogger(__name__)


def _not_found(league_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"League {league_id} not found")


def create_app(service: DraftSyncService) -> FastAPI:
    """
    Build the API app around a service instance.

    Args:
        service: The DraftSyncService that owns all league state

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="Draft Sync API",
        description="Live draft room sync and auction inflation tracking",
        version="1.0.0"
    )
    app.state.service = service

    # CORS middleware for web UI access
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("shutdown")
    def shutdown_service():
        service.shutdown()

    # ===== League lifecycle =====

    @app.post("/leagues/{league_id}/draft", response_model=LedgerResponse)
    def initialize_draft(league_id: str, request: InitializeDraftRequest):
        """
        Initialize a league for a live draft.

        Creates the ledger, loads projections and registers the draft room.
        """
        try:
            logger.info(
                f"Initializing draft: league={league_id}, room={request.room_id}, "
                f"teams={request.num_teams}, projections={len(request.projections)}"
            )
            ledger = service.initialize_draft(
                league_id,
                projections=[p.model_dump() for p in request.projections],
                room_id=request.room_id,
                num_teams=request.num_teams,
                budget_per_team=request.budget_per_team,
                bench_slots=request.bench_slots,
                sync_interval_minutes=request.sync_interval_minutes
            )
            return serialize_ledger(ledger)

        except Exception as e:
            logger.error(f"Failed to initialize draft: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Failed to initialize draft: {e}")

    @app.delete("/leagues/{league_id}", response_model=LeagueActionResponse)
    def remove_league(league_id: str):
        try:
            service.remove_league(league_id)
            return LeagueActionResponse(success=True, message=f"League {league_id} removed")

        except LedgerNotFoundError:
            raise _not_found(league_id)

        except Exception as e:
            logger.error(f"Failed to remove league: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Failed to remove league: {e}")

    # ===== Sync control =====

    @app.post("/leagues/{league_id}/sync", response_model=SyncTriggerResponse)
    def trigger_sync(league_id: str):
        """
        Sync with the draft room now.

        Feed failures are not HTTP errors: they come back in the outcome
        and the sync status.
        """
        try:
            outcome = service.trigger_sync(league_id)
            status = outcome.sync_status or service.get_sync_status(league_id)
            return SyncTriggerResponse(
                league_id=league_id,
                outcome=outcome.status,
                applied=outcome.applied,
                sync_status=serialize_sync_status(league_id, status)
            )

        except LedgerNotFoundError:
            raise _not_found(league_id)

        except Exception as e:
            logger.error(f"Failed to sync league: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Failed to sync: {e}")

    @app.post("/leagues/{league_id}/sync/start", response_model=LeagueActionResponse)
    def start_sync(league_id: str):
        try:
            service.start_sync(league_id)
            return LeagueActionResponse(success=True, message=f"Sync started for league {league_id}")

        except LedgerNotFoundError:
            raise _not_found(league_id)

        except Exception as e:
            logger.error(f"Failed to start sync: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Failed to start sync: {e}")

    @app.post("/leagues/{league_id}/sync/stop", response_model=LeagueActionResponse)
    def stop_sync(league_id: str):
        try:
            service.stop_sync(league_id)
            return LeagueActionResponse(success=True, message=f"Sync stopped for league {league_id}")

        except LedgerNotFoundError:
            raise _not_found(league_id)

        except Exception as e:
            logger.error(f"Failed to stop sync: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Failed to stop sync: {e}")

    @app.get("/leagues/{league_id}/sync-status", response_model=SyncStatusResponse)
    def get_sync_status(league_id: str):
        try:
            return serialize_sync_status(league_id, service.get_sync_status(league_id))

        except LedgerNotFoundError:
            raise _not_found(league_id)

        except Exception as e:
            logger.error(f"Failed to get sync status: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Failed to get sync status: {e}")

    @app.post("/leagues/{league_id}/manual-mode/enable", response_model=SyncStatusResponse)
    def enable_manual_mode(league_id: str):
        try:
            return serialize_sync_status(league_id, service.enable_manual_mode(league_id))

        except LedgerNotFoundError:
            raise _not_found(league_id)

        except Exception as e:
            logger.error(f"Failed to enable manual mode: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Failed to enable manual mode: {e}")

    @app.post("/leagues/{league_id}/manual-mode/disable", response_model=SyncStatusResponse)
    def disable_manual_mode(league_id: str):
        try:
            return serialize_sync_status(league_id, service.disable_manual_mode(league_id))

        except LedgerNotFoundError:
            raise _not_found(league_id)

        except Exception as e:
            logger.error(f"Failed to disable manual mode: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Failed to disable manual mode: {e}")

    # ===== Picks, ledger and inflation =====

    @app.post("/leagues/{league_id}/picks", response_model=LedgerResponse, status_code=201)
    def record_manual_pick(league_id: str, request: ManualPickRequest):
        """
        Record a pick entered by hand.

        Raises:
            404 Not Found: Unknown league
            409 Conflict: Player already drafted
            400 Bad Request: Invalid pick
        """
        try:
            service.record_manual_pick(league_id, request.to_pick())
            return serialize_ledger(service.get_ledger(league_id))

        except LedgerNotFoundError:
            raise _not_found(league_id)

        except DuplicatePlayerError as e:
            logger.warning(f"Rejected manual pick: {e}")
            raise HTTPException(status_code=409, detail=str(e))

        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        except Exception as e:
            logger.error(f"Failed to record pick: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Failed to record pick: {e}")

    @app.get("/leagues/{league_id}/ledger", response_model=LedgerResponse)
    def get_ledger(league_id: str):
        try:
            return serialize_ledger(service.get_ledger(league_id))

        except LedgerNotFoundError:
            raise _not_found(league_id)

        except Exception as e:
            logger.error(f"Failed to get ledger: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Failed to get ledger: {e}")

    @app.get("/leagues/{league_id}/inflation", response_model=InflationResponse)
    def get_inflation(league_id: str):
        try:
            state = service.get_inflation_state(league_id)
            return serialize_inflation(league_id, state, service.get_inflation_trend(league_id))

        except LedgerNotFoundError:
            raise _not_found(league_id)

        except Exception as e:
            logger.error(f"Failed to get inflation: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Failed to get inflation: {e}")

    return app
