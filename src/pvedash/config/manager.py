"""Configuration manager for pvedash."""

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..api.exceptions import ConfigError
from ..crypto import IDENTITY_FILE_NAME, decrypt, encrypt, is_encrypted
from ..models.config import ExecutorConfig, OutputConfig, ServerProfile, SessionConfig

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "PVEDASH_CONFIG_DIR"


class Config(BaseModel):
    """Main configuration model."""

    default_server: str | None = None
    servers: dict[str, ServerProfile] = Field(default_factory=dict)
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


class ConfigManager:
    """Manage pvedash configuration."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize config manager.

        Args:
            config_dir: Custom config directory (defaults to $PVEDASH_CONFIG_DIR
                or ~/.config/pvedash)
        """
        if config_dir is None:
            env_dir = os.environ.get(CONFIG_DIR_ENV)
            config_dir = Path(env_dir) if env_dir else Path.home() / ".config" / "pvedash"
        self.config_dir = config_dir
        self.config_file = self.config_dir / "config.yaml"
        self.identity_file = self.config_dir / IDENTITY_FILE_NAME
        self._config: Config | None = None

    def _ensure_config_dir(self) -> None:
        """Create config directory if it doesn't exist."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        os.chmod(self.config_dir, 0o700)

    def exists(self) -> bool:
        """Check if config file exists.

        Returns:
            True if config file exists
        """
        return self.config_file.exists()

    def load(self) -> Config:
        """Load configuration from file.

        Returns:
            Loaded configuration

        Raises:
            ConfigError: If config file doesn't exist or is invalid
        """
        if not self.exists():
            raise ConfigError(
                f"Configuration file not found at {self.config_file}. "
                "Run 'pvedash server add' to create one."
            )

        try:
            with open(self.config_file) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file: {e}")
        except OSError as e:
            raise ConfigError(f"Failed to read config: {e}")

        for name, server in (data.get("servers") or {}).items():
            if isinstance(server, dict):
                server.setdefault("name", name)

        try:
            config = Config(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid config file: {e}")

        # Decrypt passwords and re-encrypt any plaintext left on disk
        config, needs_save = self._decrypt_config(config)
        if needs_save:
            logger.info("Encrypting plaintext passwords in %s", self.config_file)
            self.save(config)
        self._config = config
        return config

    def save(self, config: Config) -> None:
        """Save configuration to file.

        Args:
            config: Configuration to save

        Raises:
            ConfigError: If save fails
        """
        self._ensure_config_dir()
        try:
            data = config.model_dump(exclude_none=True)
            self._encrypt_data(data)
            with open(self.config_file, "w") as f:
                yaml.safe_dump(data, f, default_flow_style=False)
            os.chmod(self.config_file, 0o600)
            self._config = config
        except OSError as e:
            raise ConfigError(f"Failed to save config: {e}")

    def get(self) -> Config:
        """Get current configuration, loading if necessary.

        Returns:
            Current configuration
        """
        if self._config is None:
            self._config = self.load()
        return self._config

    def get_or_default(self) -> Config:
        """Get configuration, or an empty one when no file exists yet."""
        return self.get() if self.exists() else Config()

    def get_server(self, name: str | None = None) -> ServerProfile:
        """Get a specific server profile or the default.

        Args:
            name: Server name (uses default if None)

        Returns:
            Server profile

        Raises:
            ConfigError: If server not found
        """
        config = self.get()

        if name is None:
            if config.default_server is None:
                raise ConfigError("No default server set. Use --server to specify one.")
            name = config.default_server

        if name not in config.servers:
            raise ConfigError(
                f"Server '{name}' not found. Available servers: "
                f"{', '.join(config.servers.keys())}"
            )

        return config.servers[name]

    def add_server(self, profile: ServerProfile) -> None:
        """Add or update a server profile.

        The first server added, or one flagged ``is_default``, becomes the
        default.

        Args:
            profile: Server profile
        """
        config = self.get_or_default()
        config.servers[profile.name] = profile

        if config.default_server is None or profile.is_default:
            self._mark_default(config, profile.name)

        self.save(config)

    def remove_server(self, name: str) -> None:
        """Remove a server profile.

        Args:
            name: Server name

        Raises:
            ConfigError: If server not found
        """
        config = self.get()

        if name not in config.servers:
            raise ConfigError(f"Server '{name}' not found")

        del config.servers[name]

        if config.default_server == name:
            next_name = next(iter(config.servers.keys()), None)
            config.default_server = None
            if next_name is not None:
                self._mark_default(config, next_name)

        self.save(config)

    def set_default_server(self, name: str) -> None:
        """Set the default server.

        Args:
            name: Server name

        Raises:
            ConfigError: If server not found
        """
        config = self.get()

        if name not in config.servers:
            raise ConfigError(f"Server '{name}' not found")

        self._mark_default(config, name)
        self.save(config)

    def list_servers(self) -> list[str]:
        """List all server names.

        Returns:
            List of server names
        """
        config = self.get()
        return list(config.servers.keys())

    @staticmethod
    def _mark_default(config: Config, name: str) -> None:
        config.default_server = name
        config.servers = {
            key: server.model_copy(update={"is_default": key == name})
            for key, server in config.servers.items()
        }

    def _decrypt_config(self, config: Config) -> tuple[Config, bool]:
        """Decrypt passwords. Returns the config and whether plaintext was found."""
        needs_save = False
        servers = {}
        for name, server in config.servers.items():
            if server.password:
                if is_encrypted(server.password):
                    server = server.model_copy(
                        update={"password": decrypt(server.password, self.identity_file)}
                    )
                else:
                    needs_save = True
            servers[name] = server
        config.servers = servers
        return config, needs_save

    def _encrypt_data(self, data: dict) -> None:
        """Encrypt passwords in the serialized dict before writing."""
        for server in data.get("servers", {}).values():
            if server.get("password"):
                server["password"] = encrypt(server["password"], self.identity_file)
