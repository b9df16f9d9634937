"""Server entry point."""

import logging
import sys
from typing import Any, Dict

import structlog
import uvicorn
from rich.console import Console
from rich.table import Table

from promptcollab.config import settings

logger = structlog.get_logger()
console = Console()

# Routes listed in the startup banner
API_ROUTES = (
    ("POST", "/collaborative/join"),
    ("GET", "/collaborative/status"),
    ("POST", "/collaborative/version"),
    ("POST", "/collaborative/lock"),
    ("POST", "/collaborative/unlock"),
    ("POST", "/collaborative/cursor"),
    ("POST", "/collaborative/leave"),
    ("GET", "/prompts/{id}/versions"),
    ("POST", "/prompts/{id}/revert"),
)


def setup_logging() -> None:
    """Route structlog through stdlib logging at the configured level."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    renderer = structlog.processors.JSONRenderer() if settings.is_production else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def create_uvicorn_config() -> Dict[str, Any]:
    """Keyword arguments for uvicorn.run."""
    reload = settings.reload and settings.is_development
    return {
        "app": "promptcollab.main:app",
        "host": settings.host,
        "port": settings.port,
        "reload": reload,
        # uvicorn ignores workers when reloading
        "workers": 1 if reload else settings.workers,
        "log_level": settings.log_level.lower(),
        "access_log": settings.is_development,
        "server_header": False,
    }


def startup_table() -> Table:
    """Endpoints and collaboration windows of this instance."""
    base = f"http://{settings.host}:{settings.port}"
    table = Table(title=f"{settings.app_name} {settings.app_version} ({settings.environment})")
    table.add_column("Method", style="cyan")
    table.add_column("URL", style="green")

    for method, path in API_ROUTES:
        table.add_row(method, f"{base}/api/v1{path}")
    table.add_row("GET", f"{base}/health")
    if settings.metrics_enabled:
        table.add_row("GET", f"{base}/metrics")

    table.caption = (
        f"presence window {settings.participant_liveness_minutes} min, "
        f"lock TTL {settings.lock_ttl_minutes} min, "
        f"diff {settings.diff_strategy}"
    )
    return table


def main() -> None:
    """Main server entry point."""
    setup_logging()
    console.print(startup_table())

    try:
        uvicorn.run(**create_uvicorn_config())
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.error("Server error", error=str(e), exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
