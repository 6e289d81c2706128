"""
User identity as reported by the hosted identity provider
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class User:
    """Authenticated user; created and destroyed by the identity provider only"""
    id: str
    email: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "User":
        """
        Build a User from the provider's user object

        Raises:
            ValueError: If the payload carries no user id
        """
        user_id = payload.get("id") if isinstance(payload, dict) else None
        if not user_id:
            raise ValueError("Identity payload has no user id")
        email = payload.get("email")
        return cls(id=str(user_id), email=email if isinstance(email, str) else None)

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"id": self.id, "email": self.email}
