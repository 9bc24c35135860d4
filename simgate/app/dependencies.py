"""
Dependency wiring for simgate.

Settings come from SIMGATE_* environment variables. Every component is
constructed explicitly by build_engine(); the FastAPI app keeps the one
engine it built on app.state, and tests build their own with a fake
endpoint factory.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache, partial

from fastapi import Request

from simgate.config.schemas import AppSettings
from simgate.modem import (
    CommandChannel,
    DeviceLease,
    EndpointFactory,
    RetryingChannel,
    RetryPolicy,
    SerialEndpoint,
    TcpEndpoint,
    TunnelBridge,
)
from simgate.services import ModemService, SMSService

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("true", "1")


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get application settings from environment.

    Uses lru_cache for singleton pattern.
    """
    return AppSettings(
        # Service
        service_name=os.getenv("SIMGATE_SERVICE_NAME", "simgate"),
        environment=os.getenv("SIMGATE_ENVIRONMENT", "production"),
        debug=_env_bool("SIMGATE_DEBUG"),
        log_level=os.getenv("SIMGATE_LOG_LEVEL", "info"),
        # Serial device
        serial_port=os.getenv("SIMGATE_SERIAL_PORT", "/dev/ttyUSB2"),
        serial_baud_rate=os.getenv("SIMGATE_SERIAL_BAUD_RATE", "115200"),
        command_timeout=os.getenv("SIMGATE_SERIAL_TIMEOUT", "60"),
        # Retry
        retry_attempts=os.getenv("SIMGATE_RETRY_ATTEMPTS", "3"),
        retry_base_delay=os.getenv("SIMGATE_RETRY_BASE_DELAY", "1.0"),
        # Remote device
        remote_enabled=_env_bool("SIMGATE_REMOTE_ENABLED"),
        remote_host=os.getenv("SIMGATE_REMOTE_HOST", "localhost"),
        remote_port=os.getenv("SIMGATE_REMOTE_PORT", "3000"),
        # Tunnel server
        tunnel_enabled=_env_bool("SIMGATE_ENABLE_REMOTE_TUNNEL"),
        tunnel_host=os.getenv("SIMGATE_TUNNEL_HOST", "localhost"),
        tunnel_port=os.getenv("SIMGATE_TUNNEL_PORT", "3000"),
        # SIM and phone numbers
        sim_pin=os.getenv("SIMGATE_SIM_PIN"),
        admin_number=os.getenv("SIMGATE_ADMIN_PH"),
        # Recovery
        reset_command=os.getenv(
            "SIMGATE_RESET_COMMAND", "sudo systemctl stop ModemManager.service"
        ),
    )


@dataclass
class ModemEngine:
    """All components sharing one DeviceLease."""

    settings: AppSettings
    lease: DeviceLease
    channel: CommandChannel
    modem: RetryingChannel
    modem_service: ModemService
    sms_service: SMSService
    tunnel: TunnelBridge | None = None

    @property
    def transport(self) -> str:
        if self.settings.remote_enabled:
            return f"tcp://{self.settings.remote_host}:{self.settings.remote_port}"
        return self.settings.serial_port

    async def start(self) -> None:
        if self.tunnel is not None:
            await self.tunnel.start()

    async def stop(self) -> None:
        if self.tunnel is not None:
            await self.tunnel.stop()


def default_endpoint_factory(settings: AppSettings) -> EndpointFactory:
    """Remote TCP endpoint when remote_enabled, otherwise the serial device."""
    if settings.remote_enabled:
        return partial(TcpEndpoint, settings.remote_host, settings.remote_port)
    return partial(SerialEndpoint, settings.serial_port, settings.serial_baud_rate)


def build_engine(
    settings: AppSettings,
    endpoint_factory: EndpointFactory | None = None,
    tunnel_endpoint_factory: EndpointFactory | None = None,
) -> ModemEngine:
    """
    Construct the engine.

    Args:
        settings: Application settings
        endpoint_factory: Endpoint source for local callers
        tunnel_endpoint_factory: Endpoint source for the tunnel bridge
            (defaults to the local serial device)
    """
    lease = DeviceLease()
    channel = CommandChannel(
        endpoint_factory or default_endpoint_factory(settings),
        lease,
        timeout=settings.command_timeout,
    )
    modem = RetryingChannel(
        channel,
        RetryPolicy.exponential(
            max_attempts=settings.retry_attempts,
            base_delay=settings.retry_base_delay,
        ),
    )

    tunnel = None
    if settings.tunnel_enabled:
        tunnel_channel = CommandChannel(
            tunnel_endpoint_factory
            or partial(SerialEndpoint, settings.serial_port, settings.serial_baud_rate),
            lease,
            timeout=settings.command_timeout,
        )
        tunnel = TunnelBridge(tunnel_channel, settings.tunnel_host, settings.tunnel_port)
    else:
        logger.info("Remote tunnel is disabled")

    sim_pin = settings.sim_pin.get_secret_value() if settings.sim_pin else None

    return ModemEngine(
        settings=settings,
        lease=lease,
        channel=channel,
        modem=modem,
        modem_service=ModemService(
            modem,
            sim_pin=sim_pin,
            reset_command=settings.reset_command,
        ),
        sms_service=SMSService(modem),
        tunnel=tunnel,
    )


def get_engine(request: Request) -> ModemEngine:
    """FastAPI dependency returning the engine built at startup."""
    return request.app.state.engine
