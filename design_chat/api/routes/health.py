import shutil

from fastapi import APIRouter

from design_chat.core.config import settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.SERVICE_NAME}


@router.get("/ready")
async def readiness_check():
    """Readiness check endpoint."""
    return {"status": "ready", "service": settings.SERVICE_NAME}


@router.get("/health/cli")
async def cli_health_check():
    """
    Check that the Claude CLI launcher can be found.

    Only resolves the executable on PATH; the CLI itself is not started.
    """
    command = settings.get_cli_command()
    launcher_path = shutil.which(command[0])
    return {
        "status": "healthy" if launcher_path else "unhealthy",
        "service": settings.SERVICE_NAME,
        "cli": {
            "command": command,
            "launcher_path": launcher_path,
            "allowed_tools": settings.CLAUDE_ALLOWED_TOOLS.split(","),
            "permission_mode": settings.CLAUDE_PERMISSION_MODE,
        },
    }
