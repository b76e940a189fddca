"""User identity as resolved from a session"""

from pydantic import BaseModel, ConfigDict
from typing import Optional

ROLE_CANDIDATE = "candidate"
ROLE_INTERVIEWER = "interviewer"
ROLE_ADMIN = "admin"


class User(BaseModel):
    model_config = ConfigDict(extra="ignore")
    user_id: str
    email: str
    name: str = ""
    phone: Optional[str] = None
    role: str = ROLE_CANDIDATE  # candidate, interviewer, admin

    @property
    def is_candidate(self) -> bool:
        return self.role == ROLE_CANDIDATE

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
