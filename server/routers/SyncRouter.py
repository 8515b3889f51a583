from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import SyncSourceRequest
from server.models.responses import SourceStatus, SyncAcceptedResponse, SyncStatusResponse

router = APIRouter(prefix="/sync", tags=["sync"])


@router.post("")
async def sync_all(
    request: Request,
    background_tasks: BackgroundTasks,
    _: None = Depends(verify_api_key),
) -> SyncAcceptedResponse:
    """Schedule a full sync of every configured source.

    Args:
        request (Request): FastAPI request (provides app.state.sync_service).
        background_tasks (BackgroundTasks): FastAPI background task queue.
        _ (None): Auth dependency result (unused).

    Returns:
        SyncAcceptedResponse: Acknowledgement with the scheduled source IDs.
    """
    sync_service = request.app.state.sync_service
    background_tasks.add_task(sync_service.do_full_sync)
    return SyncAcceptedResponse(source_ids=sync_service.get_source_ids())


@router.post("/source")
async def sync_source(
    request: Request,
    body: SyncSourceRequest,
    background_tasks: BackgroundTasks,
    _: None = Depends(verify_api_key),
) -> SyncAcceptedResponse:
    """Schedule a sync of a single source.

    Raises:
        HTTPException: 404 if the source ID is not configured.
    """
    sync_service = request.app.state.sync_service
    source = sync_service.get_source(body.source_id)
    if source is None:
        raise HTTPException(status_code=404, detail=f"Unknown source '{body.source_id}'")
    background_tasks.add_task(sync_service.do_sync, source)
    return SyncAcceptedResponse(source_ids=[body.source_id])


@router.get("/status")
async def sync_status(request: Request, _: None = Depends(verify_api_key)) -> SyncStatusResponse:
    sync_service = request.app.state.sync_service
    outcomes = sync_service.get_last_outcomes()
    return SyncStatusResponse(
        sources=[
            SourceStatus(
                source_id=source_id,
                running=sync_service.is_running(source_id),
                last_outcome=outcomes.get(source_id),
            )
            for source_id in sync_service.get_source_ids()
        ]
    )
