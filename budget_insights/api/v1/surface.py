"""POST /v1/surface - consuming surface lifecycle and period changes"""

from fastapi import APIRouter, Depends

from budget_insights.api.dependencies import get_scheduler
from budget_insights.api.v1.schemas import SurfaceRequest, SurfaceResponse
from budget_insights.scheduler.refresh import RefreshScheduler

router = APIRouter()


@router.post("/surface", response_model=SurfaceResponse)
async def update_surface(
    request_body: SurfaceRequest,
    scheduler: RefreshScheduler = Depends(get_scheduler),
):
    """
    Start or stop periodic refresh as the surface appears or goes away.

    A changed period_key forces an immediate analysis.
    """
    if request_body.active:
        await scheduler.activate()
    else:
        await scheduler.deactivate()

    forced = False
    if request_body.period_key is not None:
        forced = await scheduler.set_active_period(request_body.period_key)

    return SurfaceResponse(active=scheduler.is_active, forced_refresh=forced)
