import logging
import os
import shutil
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from design_chat.api.routes import api_router
from design_chat.core.config import settings
from design_chat.database.connection import connect_to_mongo, close_mongo_connection

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def _run_startup_diagnostics():
    """Print what the design chat needs to reach the Claude CLI."""
    print("[STARTUP] ========== DIAGNOSTICS ==========")

    command = settings.get_cli_command()
    launcher_path = shutil.which(command[0])
    if launcher_path:
        print(f"[STARTUP] CLI launcher: {launcher_path}")
    else:
        print(f"[STARTUP] WARNING: CLI launcher '{command[0]}' not found in PATH!")
    print(f"[STARTUP] CLI command: {' '.join(command)}")
    print(f"[STARTUP] Allowed tools: {settings.CLAUDE_ALLOWED_TOOLS}")

    working_directory = settings.get_working_directory()
    print(f"[STARTUP] Working directory: {working_directory}")
    print(f"[STARTUP] Working directory exists: {os.path.isdir(working_directory)}")
    print(f"[STARTUP] Line read timeout: {settings.LINE_READ_TIMEOUT_SECONDS:g}s")
    print(f"[STARTUP] Keep-alive interval: {settings.SSE_KEEPALIVE_SECONDS}s")

    print("[STARTUP] ========== END DIAGNOSTICS ==========")


@asynccontextmanager
async def lifespan(app: FastAPI):
    _run_startup_diagnostics()
    await connect_to_mongo()
    yield
    await close_mongo_connection()


app = FastAPI(
    title="Design Chat Service",
    description="Task design conversations with the Claude CLI, streamed over SSE",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router)


if __name__ == "__main__":
    uvicorn.run("design_chat.main:app", host="0.0.0.0", port=8083, reload=settings.DEBUG)
