import logging

from fastapi import APIRouter, Depends, Query

from routing_stats.reports.scope import Scope
from routing_stats.reports.snapshot import Snapshot
from webui.core.query_log import query_log
from webui.core.snapshot import get_scope, get_snapshot

router = APIRouter()
logger = logging.getLogger('routing-stats.webui.reports')


@router.get("/world")
async def world_report(snapshot: Snapshot = Depends(get_snapshot)):
    query_log("world_report", version=snapshot.version)
    return {
        "version": snapshot.version,
        "countries": snapshot.service.world_report().to_dict(),
    }


@router.get("/invalids")
def invalids_report(snapshot: Snapshot = Depends(get_snapshot),
                    scope: Scope = Depends(get_scope)):
    invalids = snapshot.service.invalids_report(scope)
    query_log("invalids_report", resource=str(scope) or None, version=snapshot.version)
    return {
        "version": snapshot.version,
        "scope": scope.to_dict(),
        "invalids": [item.to_dict() for item in invalids],
    }


@router.get("/seen")
def seen_report(snapshot: Snapshot = Depends(get_snapshot),
                scope: Scope = Depends(get_scope),
                unseen_only: bool = Query(False)):
    visibility = snapshot.service.seen_report(scope)
    if unseen_only:
        visibility = [item for item in visibility if not item.seen]
    query_log("seen_report", resource=str(scope) or None, version=snapshot.version)
    return {
        "version": snapshot.version,
        "scope": scope.to_dict(),
        "vrps": [item.to_dict() for item in visibility],
    }


@router.get("/resources")
def resource_report(snapshot: Snapshot = Depends(get_snapshot),
                    scope: Scope = Depends(get_scope)):
    report = snapshot.service.resource_report(scope)
    query_log("resource_report", resource=str(scope) or None, version=snapshot.version)
    result = report.to_dict()
    result["version"] = snapshot.version
    return result


@router.get("/lookup/{resource:path}")
def lookup(resource: str, snapshot: Snapshot = Depends(get_snapshot)):
    result = snapshot.service.lookup(resource)
    query_log("lookup", resource=resource, version=snapshot.version)
    data = result.to_dict()
    data["version"] = snapshot.version
    return data
