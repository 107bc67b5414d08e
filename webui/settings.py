"""
routing-stats WebUI Settings
Centralized paths and environment variables for the HTTP daemon
"""

import os
from pathlib import Path

# Query log location; unset disables the log file
QUERY_LOG_DIR = Path(os.getenv('ROUTING_STATS_QUERY_LOG_DIR')) if os.getenv('ROUTING_STATS_QUERY_LOG_DIR') else None

# Environment configuration
ROUTING_STATS_WEBUI_LOG_LEVEL = os.getenv('ROUTING_STATS_WEBUI_LOG_LEVEL', 'INFO').upper()
ROUTING_STATS_WEBUI_DOCS = os.getenv('ROUTING_STATS_WEBUI_DOCS', 'false').lower() == 'true'
ROUTING_STATS_WEBUI_ALLOW_RELOAD = os.getenv('ROUTING_STATS_WEBUI_ALLOW_RELOAD', 'true').lower() == 'true'
