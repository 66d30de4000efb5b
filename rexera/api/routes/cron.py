"""
Routes /api/cron (déclenchement externe des jobs planifiés)
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ...jobs.sla_monitor import SlaMonitorJob
from ..auth import verify_cron_secret

router = APIRouter(prefix="/api/cron", tags=["cron"], dependencies=[Depends(verify_cron_secret)])


def get_sla_monitor_job() -> SlaMonitorJob:
    return SlaMonitorJob()


@router.post("/sla-monitor")
async def run_sla_monitor(
    request: Request,
    job: SlaMonitorJob = Depends(get_sla_monitor_job),
) -> JSONResponse:
    """Exécute une passe du moniteur SLA. 500 si le job échoue."""
    outcome = await job.run(
        trigger_type="http",
        caller=request.client.host if request.client else None,
    )
    if not outcome["success"]:
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": outcome["error"], "runId": outcome["run_id"]},
        )

    result = outcome["result"]
    return JSONResponse(
        content={
            "success": True,
            "message": f"Processed {result['breaches_processed']} SLA breaches",
            **result,
            "errors": outcome["errors"],
            "runId": outcome["run_id"],
        }
    )
