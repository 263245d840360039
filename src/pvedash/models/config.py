"""Configuration models."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ServerProfile(BaseModel):
    """Connection settings for one Proxmox VE server."""

    model_config = ConfigDict(frozen=True)

    name: str
    hostname: str | None = None
    port: int = Field(default=8006, ge=1, le=65535)
    username: str = "root"
    password: str | None = None
    realm: str = "pam"
    use_ssl: bool = True
    ignore_cert: bool = False
    is_default: bool = False
    timeout: int = 30

    @field_validator("hostname")
    @classmethod
    def strip_hostname(cls, v: str | None) -> str | None:
        """Normalize hostname, accepting values pasted with a scheme.

        Args:
            v: Hostname as entered

        Returns:
            Bare hostname or None
        """
        if v is None:
            return None
        v = v.strip()
        if "://" in v:
            v = v.split("://", 1)[1]
        return v.rstrip("/") or None

    @property
    def userid(self) -> str:
        """Proxmox user id in ``user@realm`` form."""
        if "@" in self.username:
            return self.username
        return f"{self.username}@{self.realm}"

    @property
    def scheme(self) -> str:
        return "https" if self.use_ssl else "http"

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.hostname}:{self.port}/api2/json"

    @property
    def verify_tls(self) -> bool:
        """Whether certificates are checked for this profile's connections."""
        return not (self.use_ssl and self.ignore_cert)

    @property
    def connection_key(self) -> str:
        """Identity of the connection settings, used to key cached clients."""
        return (
            f"{self.hostname}:{self.port}:{self.username}:{self.realm}:"
            f"{self.use_ssl}:{self.ignore_cert}"
        )


class ExecutorConfig(BaseModel):
    """Defaults for remote command execution."""

    poll_interval: float = Field(default=1.0, gt=0)
    timeout_seconds: float = Field(default=300, gt=0)
    cancel_grace: float = Field(default=5.0, ge=0)
    username: str = "root"


class SessionConfig(BaseModel):
    """Ticket handling settings."""

    ticket_lifetime: int = Field(default=7200, gt=0)


class OutputConfig(BaseModel):
    """Output preferences."""

    format: str = Field(default="table", pattern="^(table|json)$")
    confirm_destructive: bool = True
