"""FastAPI route definitions"""

from fastapi import APIRouter, BackgroundTasks
from fastapi.responses import PlainTextResponse, JSONResponse
import logging

from app.core.scheduler import scheduler_manager, ORDER_CHECK_JOB, STALE_SWEEP_JOB

logger = logging.getLogger(__name__)

router = APIRouter()

SERVICE_BANNER = "Discoshare Shipment Micro Service"


# ============ Liveness ============

@router.get("/", response_class=PlainTextResponse)
async def index():
    """Static banner for liveness probes"""
    return SERVICE_BANNER


# ============ Job Status ============

@router.get("/jobStatus")
async def job_status():
    """Live state of the current or last order check"""
    return scheduler_manager.job_state.snapshot()


@router.get("/api/health")
async def health_check():
    """Scheduler health and upcoming runs"""
    next_runs = {}
    for task_id in (ORDER_CHECK_JOB, STALE_SWEEP_JOB):
        next_run = scheduler_manager.get_next_run_time(task_id)
        next_runs[task_id] = next_run.isoformat() if next_run else None

    return {
        "status": "healthy" if scheduler_manager.scheduler.running else "degraded",
        "scheduler_running": scheduler_manager.scheduler.running,
        "next_runs": next_runs,
    }


# ============ Actions ============

@router.post("/jobs/check-orders/trigger")
async def trigger_order_check(background_tasks: BackgroundTasks):
    """Manually start an order check"""
    if scheduler_manager.is_order_check_running():
        return JSONResponse(
            status_code=409,
            content={"detail": "An order check is already running"}
        )

    # Run check in background
    background_tasks.add_task(scheduler_manager.trigger_order_check)

    return JSONResponse(status_code=202, content={"detail": "Order check started"})
