"""
Configuration Schemas for simgate.

Pydantic model for the settings consumed by the AT engine and the
services built on it.

Security:
    The SIM PIN uses SecretStr to prevent accidental logging.
    Access the value with `.get_secret_value()`.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from ..utils.validators import is_valid_phone_number

LOG_LEVELS = ("error", "warning", "info", "debug")


class AppSettings(BaseModel):
    """
    Application settings model.

    Used for type-safe settings access. Values are loaded from SIMGATE_*
    environment variables by simgate.app.dependencies.get_settings().
    """

    model_config = ConfigDict(extra="ignore")

    # Service identity
    service_name: str = "simgate"
    environment: str = "production"
    debug: bool = False
    log_level: str = Field("info", description="One of error, warning, info, debug")

    # Serial device
    serial_port: str = Field("/dev/ttyUSB2", description="Modem AT port")
    serial_baud_rate: int = Field(115200, gt=0)
    command_timeout: float = Field(60.0, gt=0, description="Per-transaction deadline (s)")

    # Retry
    retry_attempts: int = Field(3, ge=1)
    retry_base_delay: float = Field(1.0, ge=0, description="Backoff base delay (s)")

    # Remote device (use a TunnelBridge on another host instead of the local port)
    remote_enabled: bool = False
    remote_host: str = "localhost"
    remote_port: int = Field(3000, ge=0, le=65535)

    # Tunnel server (expose the local modem to remote callers)
    tunnel_enabled: bool = False
    tunnel_host: str = "localhost"
    tunnel_port: int = Field(3000, ge=0, le=65535)

    # SIM and phone numbers
    sim_pin: SecretStr | None = Field(None, description="SIM PIN, 4-8 digits")
    admin_number: str | None = Field(None, description="Receives change notifications")

    # Recovery
    reset_command: str = "sudo systemctl stop ModemManager.service"

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.lower()
        if level == "warn":
            level = "warning"
        if level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {value}. Must be one of: {', '.join(LOG_LEVELS)}")
        return level

    @field_validator("sim_pin")
    @classmethod
    def _check_sim_pin(cls, value: SecretStr | None) -> SecretStr | None:
        if value is None:
            return None
        pin = value.get_secret_value()
        if not pin:
            return None
        if not (pin.isdigit() and 4 <= len(pin) <= 8):
            raise ValueError("SIM PIN must be 4-8 digits")
        return value

    @field_validator("admin_number")
    @classmethod
    def _check_admin_number(cls, value: str | None) -> str | None:
        if not value:
            return None
        if not is_valid_phone_number(value):
            raise ValueError(f"Invalid admin phone number format: {value}")
        return value
