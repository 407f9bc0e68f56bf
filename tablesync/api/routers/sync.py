import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request

from ..models.api_models import (
    ApiResponse,
    LogEntryModel,
    StartSyncRequest,
    SyncStatusResponse,
    TableStatusModel,
)
from ...core.exceptions import (
    ConfigurationError,
    SyncStateError,
    ToolUnavailableError,
    ValidationError,
)
from ...sync.sync_orchestrator import NOT_CONFIGURED_MESSAGE, SyncOrchestrator

router = APIRouter(prefix="/api/database-sync", tags=["database-sync"])
logger = logging.getLogger(__name__)

DEFAULT_STATUS_LOG_LIMIT = 100


def get_orchestrator(request: Request) -> SyncOrchestrator:
    """Dependency to get the orchestrator owned by the application"""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=500, detail="Sync orchestrator not initialized")
    return orchestrator


def _http_error(error: Exception) -> HTTPException:
    if isinstance(error, (ValidationError, ConfigurationError)):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, SyncStateError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, ToolUnavailableError):
        return HTTPException(status_code=503, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


@router.get("/status", response_model=SyncStatusResponse)
async def get_status(request: Request, orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """Availability, run state, per-table status and the latest log entries"""
    if not orchestrator.is_available:
        return SyncStatusResponse(available=False, message=NOT_CONFIGURED_MESSAGE)

    tool_check = await orchestrator.check_tool()
    if not tool_check.installed:
        return SyncStatusResponse(
            available=False,
            tool_installed=False,
            message="pt-table-sync is not installed. Please install Percona Toolkit to use database sync.",
        )

    log_limit = getattr(request.app.state, "status_log_limit", DEFAULT_STATUS_LOG_LIMIT)
    try:
        state = await orchestrator.get_state()
    except Exception as e:
        logger.error(f"Error getting sync status: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    return SyncStatusResponse(
        available=True,
        tool_installed=True,
        is_running=state.is_running,
        is_stopping=state.is_stopping,
        start_time=state.start_time,
        current_table=state.current_table,
        total_tables=state.total_tables,
        completed_tables=state.completed_tables,
        tables=[TableStatusModel.from_status(status) for status in state.tables.values()],
        logs=[LogEntryModel.from_entry(entry) for entry in state.logs[-log_limit:]],
    )


@router.post("/start", response_model=ApiResponse)
async def start_sync(
    body: Optional[StartSyncRequest] = Body(None),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    """Start a sync run in the background"""
    body = body or StartSyncRequest()
    if body.tables is not None and len(body.tables) == 0:
        raise HTTPException(
            status_code=400,
            detail="Invalid tables parameter. Must be a non-empty array of table names.",
        )

    try:
        tables = await orchestrator.start(body.tables, dry_run=body.dry_run)
    except Exception as e:
        logger.error(f"Error starting sync: {e}")
        raise _http_error(e)

    return ApiResponse(success=True, message="Sync started", data={"tables": tables, "dry_run": body.dry_run})


@router.post("/stop", response_model=ApiResponse)
async def stop_sync(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """Request the running sync to stop after the current table"""
    try:
        await orchestrator.stop()
    except Exception as e:
        raise _http_error(e)
    return ApiResponse(success=True, message="Stop requested")


@router.post("/clear-logs", response_model=ApiResponse)
async def clear_logs(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """Clear the run log buffer"""
    if not orchestrator.is_available:
        raise HTTPException(status_code=400, detail=NOT_CONFIGURED_MESSAGE)
    orchestrator.clear_logs()
    return ApiResponse(success=True, message="Logs cleared")
