"""Runtime serving of built or source assets."""

from .app import (
    HealthResponse,
    check_public_url,
    create_app,
    create_app_for_build,
    run_service,
)
from .switch import (
    DirectoryServer,
    NotFoundResponder,
    Responder,
    ServingSwitch,
    serving_switch_for,
)

__all__ = [
    "DirectoryServer",
    "HealthResponse",
    "NotFoundResponder",
    "Responder",
    "ServingSwitch",
    "check_public_url",
    "create_app",
    "create_app_for_build",
    "run_service",
    "serving_switch_for",
]
