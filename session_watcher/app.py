"""FastAPI application for the session watcher service.

Serves the current media session snapshot as JSON and the viewer pages as
static assets, while the sampler thread keeps the snapshot up to date.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, Response
from pydantic import BaseModel, Field

from .assets import AssetResolver
from .config import Config
from .config_watcher import RESTART_KEYS, ConfigWatcher
from .error_handlers import setup_exception_handlers
from .logging_setup import LOGGER_NAME
from .models import Snapshot
from .probe import SessionProbe, create_probe
from .sampler import Sampler
from .store import SnapshotStore

logger = logging.getLogger(__name__)

SERVICE_NAME = "session-watcher"
SERVICE_VERSION = "1.0.0"

# Global instances (initialized in lifespan)
config_watcher: Optional[ConfigWatcher] = None
store: Optional[SnapshotStore] = None
probe: Optional[SessionProbe] = None
sampler: Optional[Sampler] = None
asset_resolver: Optional[AssetResolver] = None


class SnapshotResponse(BaseModel):
    """Current media session as seen by readers."""

    title: str = Field("", description="Track title, empty when unknown")
    artist: str = Field("", description="Artist name, empty when unknown")
    album: str = Field("", description="Album title, empty when unknown")
    artwork_uri: Optional[str] = Field(None, description="Artwork as a base64 data URI")
    position_seconds: Optional[int] = Field(None, description="Playback position in seconds")
    duration_seconds: Optional[int] = Field(None, description="Track duration in seconds")
    progress_percent: Optional[float] = Field(None, description="Position / duration, 0-100")
    is_playing: bool = Field(False, description="Whether playback is running")
    published_at_epoch_seconds: int = Field(..., description="When this value was published")

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "SnapshotResponse":
        return cls(**snapshot.to_dict())


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    timestamp: str
    sampler_running: bool
    snapshot_version: int


async def on_config_change(new_config: Config, changed_keys: List[str]):
    """Handle configuration changes.

    Args:
        new_config: New configuration object.
        changed_keys: List of keys that changed.
    """
    logger.info(f"Configuration updated: {', '.join(changed_keys)}")

    if "log_level" in changed_keys:
        level = getattr(logging, new_config.log_level)
        package_logger = logging.getLogger(LOGGER_NAME)
        package_logger.setLevel(level)
        for handler in package_logger.handlers:
            handler.setLevel(level)

    if "asset_root" in changed_keys:
        logger.info(f"Serving assets from {new_config.asset_root or 'bundled defaults'}")

    if any(key in RESTART_KEYS for key in changed_keys):
        logger.warning(
            f"Listener changed to {new_config.base_url} - restart required to apply"
        )


def current_asset_root():
    return config_watcher.current().asset_root if config_watcher else None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown."""
    global config_watcher, store, probe, sampler, asset_resolver

    # Startup
    logger.info("Starting session watcher service...")
    config_refresh_task = None
    probe = sampler = None

    try:
        if config_watcher is None:
            config_watcher = ConfigWatcher()
        config = config_watcher.current()
        logger.info(f"Configuration loaded: environment={config.environment}, probe={config.probe}")

        probe = create_probe(config.probe)
        probe.open()

        store = SnapshotStore(Snapshot.empty(int(time.time())))
        sampler = Sampler(probe, store)
        sampler.start()

        asset_resolver = AssetResolver(current_asset_root)

        config_refresh_task = asyncio.create_task(
            config_watcher.start_auto_refresh(callback=on_config_change)
        )

        logger.info(f"Service started successfully on {config.base_url}")
        yield

    except Exception as e:
        logger.error(f"Failed to start service: {e}", exc_info=True)
        raise

    finally:
        # Shutdown
        logger.info("Shutting down session watcher service...")

        if config_refresh_task:
            config_refresh_task.cancel()
            try:
                await config_refresh_task
            except asyncio.CancelledError:
                pass

        if sampler:
            sampler.stop()
        if probe:
            probe.close()
        logger.info("Service shut down complete")


# Create FastAPI app
app = FastAPI(
    title="Session Watcher Service",
    description="Mirrors the OS media session as a JSON feed for overlays and widgets",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)
setup_exception_handlers(app)


@app.get("/api/now", response_model=SnapshotResponse)
async def get_now_playing():
    """Current snapshot of the media session.

    Returns:
        SnapshotResponse: The latest published snapshot.
    """
    return SnapshotResponse.from_snapshot(store.read())


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint.

    Returns:
        HealthResponse: Healthy while the sampler thread is alive.
    """
    running = bool(sampler and sampler.is_running)

    return HealthResponse(
        status="healthy" if running else "degraded",
        service=SERVICE_NAME,
        timestamp=datetime.now().isoformat(),
        sampler_running=running,
        snapshot_version=store.version if store else 0,
    )


@app.get("/{asset_path:path}")
async def get_asset(asset_path: str):
    """Serve a static asset; the empty path serves index.html.

    Raises:
        AssetNotFoundError: Converted to 404 by the exception handlers.
    """
    asset = asset_resolver.resolve(asset_path)
    return Response(content=asset.content, media_type=asset.content_type)
