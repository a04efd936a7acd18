"""Session context for the signed-in console user.

The platform returns the user profile from ``GET /auth/me``. Everything that
needs institution scoping goes through :class:`SessionContext` instead of
re-reading the profile ad hoc.
"""
from pydantic import BaseModel, ConfigDict, Field

STATE_DIRECTORATE = "STATE_DIRECTORATE"


class InstitutionScopeError(Exception):
    """Raised when an operation cannot be tied to an institution."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SessionUser(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str | None = None
    email: str | None = None
    role: str
    institution_id: str | None = Field(default=None, alias="institutionId")


class SessionContext(BaseModel):
    """Current user plus the bearer token used to reach the platform."""

    user: SessionUser
    access_token: str

    @classmethod
    def from_profile(cls, profile: dict, access_token: str) -> "SessionContext":
        # /auth/me answers either {user: {...}}, {data: {...}} or the bare profile
        payload = profile.get("user") or profile.get("data") or profile
        return cls(user=SessionUser.model_validate(payload), access_token=access_token)

    @property
    def is_state_directorate(self) -> bool:
        return self.user.role == STATE_DIRECTORATE

    def resolve_institution(self, target: str | None = None) -> str | None:
        """Institution an operation should act on.

        State directorate users act on behalf of any institution and must
        name one explicitly. Everyone else is pinned to their own institution
        and ``None`` is returned so the platform applies its own scoping.
        """
        if self.is_state_directorate:
            if not target:
                raise InstitutionScopeError("Please select an institution first")
            return target
        return None

    def own_institution(self) -> str:
        if not self.user.institution_id:
            raise InstitutionScopeError("Institution information not found. Please re-login.")
        return self.user.institution_id
