"""
OAuth credential for Withings API integration.

A Credential is issued by the token endpoint and never modified: a refresh
produces a new Credential that replaces the old one. Persisting credentials
is up to the caller; to_dict()/from_dict() give a JSON-friendly form.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

# Credentials count as expired this long before their expiry time
EXPIRY_DELTA = timedelta(seconds=10)


@dataclass(frozen=True)
class Credential:
    """
    Issued OAuth credential.

    Attributes:
        access_token: Short-lived token sent with API calls
        refresh_token: Token used to obtain a new credential (may be empty)
        token_type: Token type (typically "Bearer")
        expiry: When the access token expires (timezone-aware UTC);
                None means it does not expire
        raw: Complete token payload, including provider extras such as
             "userid" and "scope"
    """

    access_token: str
    refresh_token: str = ""
    token_type: str = "Bearer"
    expiry: Optional[datetime] = None
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        # Read-only copy; the caller's dict stays independent
        object.__setattr__(self, "raw", MappingProxyType(dict(self.raw)))

    def extra(self, key: str, default: Any = None) -> Any:
        """
        Get a provider-specific field from the token payload.

        Example:
            credential.extra("userid")
        """
        return self.raw.get(key, default)

    @property
    def user_id(self) -> Optional[str]:
        """Withings user identifier the credential was issued for."""
        value = self.raw.get("userid")
        return None if value is None else str(value)

    @property
    def scope(self) -> str:
        """Comma-separated scopes granted by the user."""
        return str(self.raw.get("scope", ""))

    def is_expired(self, now: Optional[datetime] = None, margin: timedelta = EXPIRY_DELTA) -> bool:
        """
        Check if the access token is expired or about to expire.

        Args:
            now: Reference time (defaults to current UTC time)
            margin: Safety margin subtracted from the expiry

        Returns:
            True if now is at or after expiry minus margin
        """
        if self.expiry is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= self.expiry - margin

    @property
    def valid(self) -> bool:
        """True if the credential has an access token and is not expired."""
        return bool(self.access_token) and not self.is_expired()

    def canonical_type(self) -> str:
        """
        Token type with canonical casing.

        Returns:
            "Bearer" when unset, otherwise the canonical form of the type
        """
        lowered = self.token_type.lower()
        if lowered in ("", "bearer"):
            return "Bearer"
        if lowered == "mac":
            return "MAC"
        if lowered == "basic":
            return "Basic"
        return self.token_type

    def authorization_header(self) -> str:
        """Value for the Authorization request header."""
        return f"{self.canonical_type()} {self.access_token}"

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary for JSON serialization.

        Returns:
            Dictionary representation with expiry as an ISO timestamp
        """
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_type": self.token_type,
            "expiry": self.expiry.isoformat() if self.expiry else None,
            "raw": dict(self.raw),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Credential":
        """
        Create Credential from a dictionary produced by to_dict().

        Raises:
            KeyError: If access_token is missing
            ValueError: If expiry is not an ISO timestamp
        """
        expiry = data.get("expiry")
        if expiry:
            expiry = datetime.fromisoformat(expiry)
            # Ensure timezone-aware
            if expiry.tzinfo is None:
                expiry = expiry.replace(tzinfo=timezone.utc)

        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token", ""),
            token_type=data.get("token_type", "Bearer"),
            expiry=expiry or None,
            raw=dict(data.get("raw", {})),
        )
