"""AECCheck web route modules.

Each module exports a `router` (APIRouter instance) that the app includes.

Usage:
    from aeccheck.web.routes import parameters
    app.include_router(parameters.router)
"""

from aeccheck.web.routes import health, parameters

__all__ = [
    "health",
    "parameters",
]
