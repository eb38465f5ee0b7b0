"""UserSession class carrying the signed-in user's identity."""

from typing import Any, Dict, Optional


class UserSession:
    """Authenticated user, passed explicitly to every data-access call."""

    def __init__(
        self,
        user_id: str,
        email: str,
        access_token: str,
        full_name: Optional[str] = None,
    ):
        self.user_id = user_id
        self.email = email
        self.access_token = access_token
        self.full_name = full_name

    @property
    def display_name(self) -> str:
        """Full name, else the e-mail local part, else a generic label."""
        if self.full_name:
            return self.full_name
        if self.email:
            return self.email.split("@")[0]
        return "Usuário"

    @property
    def initial(self) -> str:
        name = self.full_name or self.email
        return name[0].upper() if name else "U"

    @classmethod
    def from_auth_response(cls, data: Dict[str, Any]) -> "UserSession":
        """Build from the auth provider's token response."""
        user = data.get("user") or {}
        metadata = user.get("user_metadata") or {}
        return cls(
            user["id"],
            user.get("email") or "",
            data["access_token"],
            metadata.get("full_name"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "access_token": self.access_token,
            "full_name": self.full_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserSession":
        return cls(
            data["user_id"],
            data["email"],
            data["access_token"],
            data.get("full_name"),
        )
