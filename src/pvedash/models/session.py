"""Authentication session model."""

from pydantic import BaseModel, ConfigDict

AUTH_COOKIE_NAME = "PVEAuthCookie"
CSRF_HEADER_NAME = "CSRFPreventionToken"


class AuthSession(BaseModel):
    """Ticket pair obtained from a login exchange.

    Lives in memory only; it is never written to the config file.
    """

    model_config = ConfigDict(frozen=True)

    ticket: str
    csrf_token: str
    username: str
    issued_at: float
    expires_at: float

    def is_valid(self, now: float) -> bool:
        """Check whether the session may still be attached to requests.

        Args:
            now: Current time (epoch seconds)

        Returns:
            True while ``now`` is before the refresh deadline
        """
        return now < self.expires_at

    def cookie_header(self) -> str:
        return f"{AUTH_COOKIE_NAME}={self.ticket}"

    def auth_headers(self, include_csrf: bool = True) -> dict[str, str]:
        """Build the credential headers for a request.

        Args:
            include_csrf: Add the anti-forgery token (required for writes)

        Returns:
            Header dict
        """
        headers = {"Cookie": self.cookie_header()}
        if include_csrf:
            headers[CSRF_HEADER_NAME] = self.csrf_token
        return headers

    def __repr__(self) -> str:
        return f"AuthSession(username={self.username!r}, expires_at={self.expires_at!r})"

    __str__ = __repr__
