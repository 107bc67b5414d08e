#!/usr/bin/env python3
"""
routing-stats HTTP daemon entry point

Runs the FastAPI application for an already populated SnapshotHolder.
"""

import uvicorn

from routing_stats.reports.snapshot import SnapshotHolder
from webui.app import create_app


def serve(holder: SnapshotHolder, host: str = "127.0.0.1", port: int = 8080,
          log_level: str = "INFO"):
    """Block serving HTTP until the process is interrupted"""
    app = create_app(holder)
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=log_level.lower(),
    )
