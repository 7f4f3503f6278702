"""Configuration management for SSDP Listener."""

import json
from ipaddress import IPv4Address
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DiscoveryConfig(BaseModel): # Nested under Config (BaseSettings)
    """Configuration for the SSDP discovery engine."""

    multicast_address: IPv4Address = Field(default=IPv4Address("239.255.255.250"), description="SSDP multicast group address.")
    multicast_port: int = Field(default=1900, ge=1, le=65535, description="SSDP multicast port. The listening socket is bound to it.")
    mx_seconds: int = Field(default=2, ge=1, le=5, description="MX value sent in M-SEARCH requests (max response delay in seconds).")

    read_timeout_ms: int = Field(default=4000, gt=0, description="Default read timeout in milliseconds. A new M-SEARCH is sent after each timeout.")
    receive_buffer_size: int = Field(default=9216, ge=512, le=65535, description="Maximum number of bytes read per datagram.")
    error_backoff_seconds: float = Field(default=1.0, ge=1.0, description="Pause after a network failure before the next discovery cycle.")

    multicast_ttl: int = Field(default=2, ge=1, le=255, description="TTL for outbound multicast M-SEARCH requests.")
    reuse_port: bool = Field(default=True, description="Also set SO_REUSEPORT where the platform supports it.")
    interface: Optional[str] = Field(default=None, description="Network interface name (e.g. 'eth0') to join the multicast group on. If empty, all interfaces are used.")

    @field_validator("multicast_address")
    @classmethod
    def check_multicast(cls, v: IPv4Address) -> IPv4Address:
        if not v.is_multicast:
            raise ValueError(f"{v} is not a multicast address")
        return v


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format ('json' or 'console')")
    file: Optional[Path] = Field(default=None, description="Log file path")


class Config(BaseSettings):
    """Main configuration for SSDP Listener. Loads from environment variables prefixed with SSDP_LISTENER_."""

    model_config = SettingsConfigDict(
        env_prefix='SSDP_LISTENER_',
        env_nested_delimiter='__', # e.g., SSDP_LISTENER_DISCOVERY__READ_TIMEOUT_MS
        extra='ignore',
        env_file='.env',
        env_file_encoding='utf-8'
    )

    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, file_path: Path) -> "Config":
        """Create configuration strictly from a JSON file.
        Note: This does not layer with environment variables.
        """
        with open(file_path) as f:
            config_data = json.load(f)
        return cls.model_validate(config_data)
