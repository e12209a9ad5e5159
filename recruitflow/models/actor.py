from dataclasses import dataclass
from typing import Optional
import enum


class ActorRole(str, enum.Enum):
    APPLICANT = "APPLICANT"
    HR = "HR"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class Actor:
    """Identity handed to the engine by the session collaborator. Trusted as-is."""

    identity: str
    role: ActorRole
    display_name: Optional[str] = None

    def __repr__(self):
        return f"<Actor(identity={self.identity}, role={self.role.value})>"
