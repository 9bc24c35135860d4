"""
simgate - Modem control service

FastAPI admin application. Builds the AT engine at startup, runs the
tunnel bridge when enabled, and exposes a small HTTP surface for raw AT
commands, SMS and call forwarding.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from simgate import __version__
from simgate.app.dependencies import ModemEngine, build_engine, get_engine, get_settings
from simgate.config.schemas import AppSettings
from simgate.utils.validators import is_valid_phone_number

logger = logging.getLogger(__name__)


class ATCommandRequest(BaseModel):
    command: str = Field(..., min_length=1, description="AT command without trailing CR")


class SendSMSRequest(BaseModel):
    number: str
    message: str = Field(..., min_length=1)


class ForwardingRequest(BaseModel):
    number: str


def _require_phone(number: str) -> str:
    if not is_valid_phone_number(number):
        raise HTTPException(status_code=400, detail=f"Invalid phone number: {number}")
    return number


def create_app(
    settings: AppSettings | None = None,
    engine: ModemEngine | None = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Settings to use (defaults to environment settings)
        engine: Prebuilt engine (tests pass one with a fake endpoint)
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Handles startup and shutdown events.
        """
        logger.info("Starting simgate services...")
        app.state.engine = engine or build_engine(settings)
        try:
            await app.state.engine.start()
            logger.info(f"simgate services initialized (transport: {app.state.engine.transport})")
        except Exception as e:
            logger.error(f"Failed to initialize services: {e}", exc_info=True)
            raise

        yield

        logger.info("Shutting down simgate services...")
        await app.state.engine.stop()
        logger.info("simgate services shut down successfully")

    app = FastAPI(
        title="simgate",
        description="Call forwarding and SMS control for an AT-command modem",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    @app.get("/", tags=["root"])
    async def root() -> dict[str, str]:
        """Root endpoint with service info."""
        return {
            "service": settings.service_name,
            "version": __version__,
            "status": "running",
        }

    @app.get("/health", tags=["health"])
    async def health_check(engine: ModemEngine = Depends(get_engine)) -> dict[str, Any]:
        """Configured transport, lease state and tunnel status."""
        return {
            "status": "healthy",
            "transport": engine.transport,
            "lease": engine.lease.get_stats(),
            "tunnel": {
                "enabled": engine.tunnel is not None,
                "running": engine.tunnel.is_running if engine.tunnel else False,
            },
        }

    @app.post("/api/v1/at-command", tags=["modem"])
    async def at_command(
        body: ATCommandRequest,
        engine: ModemEngine = Depends(get_engine),
    ) -> dict[str, Any]:
        """Run a raw AT command with retries."""
        result = await engine.modem.send(body.command.strip())
        return result.to_dict()

    @app.get("/api/v1/sms", tags=["sms"])
    async def list_unread_sms(engine: ModemEngine = Depends(get_engine)) -> dict[str, Any]:
        records = await engine.sms_service.get_unread_sms()
        return {"messages": [record.to_dict() for record in records]}

    @app.post("/api/v1/sms", tags=["sms"])
    async def send_sms(
        body: SendSMSRequest,
        engine: ModemEngine = Depends(get_engine),
    ) -> dict[str, Any]:
        number = _require_phone(body.number)
        return {"success": await engine.sms_service.send_sms(number, body.message)}

    @app.get("/api/v1/forwarding", tags=["forwarding"])
    async def get_forwarding(engine: ModemEngine = Depends(get_engine)) -> dict[str, Any]:
        return {"number": await engine.modem_service.get_forwarding_number()}

    @app.put("/api/v1/forwarding", tags=["forwarding"])
    async def set_forwarding(
        body: ForwardingRequest,
        engine: ModemEngine = Depends(get_engine),
    ) -> dict[str, Any]:
        number = _require_phone(body.number)
        success = await engine.modem_service.set_forwarding_number(number)
        if not success:
            raise HTTPException(status_code=502, detail="Modem rejected the forwarding update")
        return {"success": True, "number": number}

    return app


# Configure logging and create the application
settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = create_app(settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "simgate.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
