"""
Configuration management for the serial gateway.

Loads configuration from YAML files with environment variable overrides.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml


# Default configuration paths
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "serialgate"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
SYSTEM_CONFIG_FILE = Path("/etc/serialgate/config.yaml")


@dataclass
class ServerConfig:
    """Socket.IO server configuration."""

    host: str = "0.0.0.0"
    port: int = 8080
    certfile: Optional[Path] = None
    keyfile: Optional[Path] = None
    cors_allowed_origins: Union[str, list[str]] = "*"

    @property
    def tls_enabled(self) -> bool:
        return self.certfile is not None and self.keyfile is not None


@dataclass
class SerialConfig:
    """Defaults applied to client-supplied port configuration."""

    default_baud: int = 115200
    default_delimiter: str = "\n"
    default_eol: str = "\n"
    read_timeout: float = 0.1


@dataclass
class Config:
    """Main configuration for the serial gateway."""

    server: ServerConfig = field(default_factory=ServerConfig)
    serial: SerialConfig = field(default_factory=SerialConfig)
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        server_data = data.get("server", {})
        serial_data = data.get("serial", {})

        certfile = server_data.get("certfile")
        keyfile = server_data.get("keyfile")
        server = ServerConfig(
            host=server_data.get("host", "0.0.0.0"),
            port=server_data.get("port", 8080),
            certfile=Path(certfile) if certfile else None,
            keyfile=Path(keyfile) if keyfile else None,
            cors_allowed_origins=server_data.get("cors_allowed_origins", "*"),
        )

        serial = SerialConfig(
            default_baud=serial_data.get("default_baud", 115200),
            default_delimiter=serial_data.get("default_delimiter", "\n"),
            default_eol=serial_data.get("default_eol", "\n"),
            read_timeout=serial_data.get("read_timeout", 0.1),
        )

        return cls(
            server=server,
            serial=serial,
            log_level=data.get("log_level", "INFO"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert Config to dictionary."""
        return {
            "server": {
                "host": self.server.host,
                "port": self.server.port,
                "certfile": str(self.server.certfile) if self.server.certfile else None,
                "keyfile": str(self.server.keyfile) if self.server.keyfile else None,
                "cors_allowed_origins": self.server.cors_allowed_origins,
            },
            "serial": {
                "default_baud": self.serial.default_baud,
                "default_delimiter": self.serial.default_delimiter,
                "default_eol": self.serial.default_eol,
                "read_timeout": self.serial.read_timeout,
            },
            "log_level": self.log_level,
        }


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from YAML file.

    Search order:
    1. Explicit path if provided
    2. SERIALGATE_CONFIG environment variable
    3. ~/.config/serialgate/config.yaml
    4. /etc/serialgate/config.yaml
    5. Default values

    Environment variable overrides:
    - SERIALGATE_HOST: Override server.host
    - SERIALGATE_PORT (or PORT): Override server.port
    - SERIALGATE_CERTFILE / SERIALGATE_KEYFILE: Override TLS files
    - SERIALGATE_DEFAULT_BAUD: Override serial.default_baud
    - SERIALGATE_LOG_LEVEL: Override log_level

    Args:
        config_path: Optional explicit path to config file

    Returns:
        Loaded configuration
    """
    if config_path:
        paths_to_try = [config_path]
    else:
        env_path = os.environ.get("SERIALGATE_CONFIG")
        paths_to_try = []
        if env_path:
            paths_to_try.append(Path(env_path))
        paths_to_try.extend([DEFAULT_CONFIG_FILE, SYSTEM_CONFIG_FILE])

    config_data = {}
    for path in paths_to_try:
        if path.exists():
            try:
                with open(path) as f:
                    config_data = yaml.safe_load(f) or {}
                break
            except (OSError, yaml.YAMLError):
                continue

    config = Config.from_dict(config_data)
    config = _apply_env_overrides(config)

    return config


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config."""
    if "SERIALGATE_HOST" in os.environ:
        config.server.host = os.environ["SERIALGATE_HOST"]

    port = os.environ.get("SERIALGATE_PORT", os.environ.get("PORT"))
    if port is not None:
        try:
            config.server.port = int(port)
        except ValueError:
            pass

    if "SERIALGATE_CERTFILE" in os.environ:
        config.server.certfile = Path(os.environ["SERIALGATE_CERTFILE"])

    if "SERIALGATE_KEYFILE" in os.environ:
        config.server.keyfile = Path(os.environ["SERIALGATE_KEYFILE"])

    if "SERIALGATE_DEFAULT_BAUD" in os.environ:
        try:
            config.serial.default_baud = int(os.environ["SERIALGATE_DEFAULT_BAUD"])
        except ValueError:
            pass

    if "SERIALGATE_LOG_LEVEL" in os.environ:
        config.log_level = os.environ["SERIALGATE_LOG_LEVEL"]

    return config


def save_config(config: Config, path: Path) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration to save
        path: Path to save to
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        f.write("# Serial Gateway Configuration\n")
        f.write("# See documentation for all options\n\n")
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
