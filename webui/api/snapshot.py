import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool

from routing_stats.reports.snapshot import Snapshot, SnapshotHolder
from routing_stats.utils.error_handling import RoutingStatsError
from webui.core.query_log import query_log
from webui.core.snapshot import get_holder, get_snapshot
from webui.schemas import ReloadResult
from webui.settings import ROUTING_STATS_WEBUI_ALLOW_RELOAD

router = APIRouter()
logger = logging.getLogger('routing-stats.webui.snapshot')


@router.get("")
async def snapshot_summary(snapshot: Snapshot = Depends(get_snapshot)):
    return snapshot.to_dict()


@router.post("/reload", response_model=ReloadResult)
async def reload_snapshot(holder: SnapshotHolder = Depends(get_holder)):
    """Rebuild the dataset from the input files and publish it"""
    if not ROUTING_STATS_WEBUI_ALLOW_RELOAD:
        raise HTTPException(status_code=403, detail="Reload over HTTP is disabled")

    try:
        snapshot = await run_in_threadpool(holder.reload)
    except RoutingStatsError as e:
        query_log("snapshot_reload", result="failed", version=holder.version)
        return ReloadResult(ok=False, version=holder.version, error=e.message)
    except (OSError, ValueError) as e:
        logger.error(f"Reload failed: {e}")
        query_log("snapshot_reload", result="failed", version=holder.version)
        return ReloadResult(ok=False, version=holder.version, error=str(e))

    query_log("snapshot_reload", version=snapshot.version)
    return ReloadResult(ok=True, version=snapshot.version)
