"""Bearer token holder shared by the HTTP layer.

The backend issues a short-lived access token and a longer-lived refresh
token at login. The HTTP client attaches the access token to every request
and, on a 401, exchanges the refresh token for a new pair exactly once per
original request.
"""

from pydantic import BaseModel, Field


class TokenStore(BaseModel):
    """In-memory authentication state.

    Attributes:
        access_token: Token sent as ``Authorization: Bearer <token>``.
        refresh_token: Token used to obtain a new access token.
    """

    access_token: str | None = Field(None, description="Current bearer token")
    refresh_token: str | None = Field(None, description="Token used for refresh")

    @property
    def is_authenticated(self) -> bool:
        """Whether an access token is currently held."""
        return self.access_token is not None

    def update(self, access_token: str, refresh_token: str | None = None) -> None:
        """Store a freshly issued token pair.

        The refresh token is only replaced when the backend rotates it.
        """
        self.access_token = access_token
        if refresh_token:
            self.refresh_token = refresh_token

    def clear(self) -> None:
        """Forget all local authentication state."""
        self.access_token = None
        self.refresh_token = None

    def authorization_header(self) -> dict[str, str]:
        """Return the header dict to attach to a request (may be empty)."""
        if self.access_token:
            return {"Authorization": f"Bearer {self.access_token}"}
        return {}
