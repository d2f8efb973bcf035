import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from flightwatch.api.deps import get_price_checker, get_scheduler
from flightwatch.config import get_settings
from flightwatch.database import get_db
from flightwatch.exceptions import AlertNotFoundError, JobNotFoundError
from flightwatch.scheduler import PriceWatchScheduler
from flightwatch.schemas import (
    AlertRouteSummary,
    CheckResultResponse,
    MonitoringJobCreate,
    MonitoringJobDetail,
    MonitoringJobResponse,
    PriceAlertResponse,
    PriceAlertWithJob,
    PriceHistoryResponse,
    SchedulerModeRequest,
    TrendPointResponse,
)
from flightwatch.services.alerts import AlertService
from flightwatch.services.amadeus import AmadeusError, AmadeusRateLimitError
from flightwatch.services.job_registry import JobRegistry
from flightwatch.services.price_check import PriceCheckService
from flightwatch.services.trends import TrendAggregator

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter()


def _job_detail(registry: JobRegistry, job, history_limit: int, alerts) -> MonitoringJobDetail:
    return MonitoringJobDetail(
        **MonitoringJobResponse.model_validate(job).model_dump(),
        price_history=[
            PriceHistoryResponse.model_validate(row)
            for row in registry.recent_history(job.id, history_limit)
        ],
        price_alerts=[PriceAlertResponse.model_validate(alert) for alert in alerts],
    )


@router.post("/create", status_code=201)
async def create_job(
    body: MonitoringJobCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    checker: PriceCheckService = Depends(get_price_checker),
):
    job = JobRegistry(db).create(
        origin=body.origin,
        destination=body.destination,
        departure_date=body.departure_date,
        return_date=body.return_date,
        adults=body.adults,
        travel_class=body.travel_class,
        airlines=body.airlines,
    )

    # First snapshot is best-effort and must not hold up or fail the create
    background_tasks.add_task(checker.record_initial_snapshot, job.id)

    return {
        "success": True,
        "data": MonitoringJobResponse.model_validate(job),
        "message": "Price monitoring started. You will be notified of price drops.",
    }


@router.get("/jobs")
async def list_jobs(
    active: Optional[bool] = None,
    db: Session = Depends(get_db),
):
    registry = JobRegistry(db)
    jobs = registry.list_jobs(is_active=active)
    data = [
        _job_detail(
            registry,
            job,
            settings.job_list_history_limit,
            registry.recent_alerts(job.id, unread_only=True),
        )
        for job in jobs
    ]
    return {"success": True, "data": data, "count": len(data)}


@router.get("/jobs/{job_id}")
async def get_job(job_id: str, db: Session = Depends(get_db)):
    registry = JobRegistry(db)
    try:
        job = registry.get(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    detail = _job_detail(
        registry,
        job,
        settings.job_detail_history_limit,
        registry.recent_alerts(job_id, settings.job_detail_alert_limit),
    )
    return {"success": True, "data": detail}


@router.delete("/jobs/{job_id}")
async def delete_job(
    job_id: str,
    purge: bool = False,
    db: Session = Depends(get_db),
):
    """Deactivate a job, or with ``purge=true`` delete it with all its data."""
    registry = JobRegistry(db)
    try:
        if purge:
            registry.delete(job_id)
            return {"success": True, "message": "Monitoring job deleted"}
        registry.deactivate(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {"success": True, "message": "Monitoring job deactivated"}


@router.get("/jobs/{job_id}/trends")
async def get_trends(job_id: str, db: Session = Depends(get_db)):
    try:
        JobRegistry(db).get(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    points = TrendAggregator(db).get_trends(job_id)
    return {
        "success": True,
        "data": [TrendPointResponse.model_validate(point) for point in points],
        "count": len(points),
    }


@router.post("/jobs/{job_id}/check")
async def check_job_now(
    job_id: str,
    db: Session = Depends(get_db),
    checker: PriceCheckService = Depends(get_price_checker),
):
    try:
        job = JobRegistry(db).get(job_id)
        result = await checker.check_job(db, job)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AmadeusRateLimitError as e:
        raise HTTPException(status_code=429, detail=str(e))
    except AmadeusError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return {
        "success": True,
        "data": CheckResultResponse.model_validate(result),
        "message": "Price check completed",
    }


@router.get("/alerts")
async def list_alerts(
    read: Optional[bool] = None,
    job_id: Optional[str] = Query(None, alias="jobId"),
    db: Session = Depends(get_db),
):
    rows = AlertService(db).list_alerts(is_read=read, job_id=job_id)
    data = [
        PriceAlertWithJob(
            **PriceAlertResponse.model_validate(alert).model_dump(),
            monitoring_job=AlertRouteSummary.model_validate(job),
        )
        for alert, job in rows
    ]
    return {"success": True, "data": data, "count": len(data)}


@router.patch("/alerts/{alert_id}/read")
async def mark_alert_read(alert_id: str, db: Session = Depends(get_db)):
    try:
        alert = AlertService(db).mark_read(alert_id)
    except AlertNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {"success": True, "data": PriceAlertResponse.model_validate(alert)}


@router.get("/scheduler/status")
async def scheduler_status(scheduler: PriceWatchScheduler = Depends(get_scheduler)):
    return {"success": True, "data": scheduler.get_status()}


@router.post("/scheduler/mode")
async def set_scheduler_mode(
    body: SchedulerModeRequest,
    scheduler: PriceWatchScheduler = Depends(get_scheduler),
):
    try:
        changed = scheduler.set_mode(body.mode)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    message = f"Scheduler mode changed to {body.mode}" if changed else f"Scheduler already in {body.mode} mode"
    return {"success": True, "data": scheduler.get_status(), "message": message}


@router.post("/scheduler/run")
async def run_scheduler_now(scheduler: PriceWatchScheduler = Depends(get_scheduler)):
    """Run a sweep immediately. Skipped when one is already in progress."""
    result = await scheduler.run_sweep()
    if result is None:
        return {
            "success": True,
            "data": {"skipped": True},
            "message": "A price check sweep is already running",
        }
    return {
        "success": True,
        "data": {"skipped": False, **result.to_dict()},
        "message": "Price check sweep completed",
    }
