"""
lacat - main entry point

Loads configuration, sets up logging, wires the runtime and serves the API.
The wallet session is established at startup; if that fails the process
exits (no reconnect).

Usage:
    python main.py              # Start lacat
    uvicorn main:app            # Or via uvicorn directly
"""

import os
import logging

import uvicorn
from dotenv import load_dotenv

# ============================================================
# BOOTSTRAP
# ============================================================

load_dotenv()

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger("lacat.main")


# ============================================================
# MODULE IMPORTS
# ============================================================

from lacat.logs import install_key_masking
from lacat.settings import LacatSettings
from lacat.runtime import LacatRuntime
from api.server import create_app


def create_lacat_app(settings: LacatSettings):
    """Create the fully wired FastAPI app."""
    logger.info(
        f"lacat contract {settings.lacat_address} via {settings.rpc_url} "
        f"(chain {settings.chain_id})"
    )
    runtime = LacatRuntime.from_settings(settings)
    return create_app(runtime, connect_on_startup=True)


# ============================================================
# ENTRY POINT
# ============================================================

SETTINGS = LacatSettings.from_env()
install_key_masking(SETTINGS.private_key)
app = create_lacat_app(SETTINGS)

if __name__ == "__main__":
    host = SETTINGS.host
    port = SETTINGS.port

    logger.info(f"Starting server on {host}:{port}")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        log_level=LOG_LEVEL.lower(),
    )
