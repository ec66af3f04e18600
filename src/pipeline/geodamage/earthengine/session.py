"""Earth Engine session handling."""

import ee
import structlog

logger = structlog.get_logger()

_initialized_project: str | None = None
_initialized = False


def initialize(project: str | None = None) -> None:
    """Initialize Earth Engine once per process.

    Falls back to the interactive ``ee.Authenticate()`` flow a single time
    when no stored credentials are found. Errors from the second attempt
    propagate.

    Args:
        project: Google Cloud project registered for Earth Engine.
    """
    global _initialized, _initialized_project
    if _initialized and _initialized_project == project:
        return

    try:
        ee.Initialize(project=project)
    except Exception as e:
        logger.warning("Earth Engine initialization failed, authenticating", error=str(e))
        ee.Authenticate()
        ee.Initialize(project=project)

    _initialized = True
    _initialized_project = project
    logger.info("Earth Engine initialized", project=project or "default")


def reset() -> None:
    """Forget the initialized state (useful for testing)."""
    global _initialized, _initialized_project
    _initialized = False
    _initialized_project = None
