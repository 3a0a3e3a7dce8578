"""Authentication schemas."""

from pydantic import BaseModel, Field


class GoogleClaims(BaseModel):
    """Claims carried by a Google identity token."""

    sub: str = Field(..., min_length=1)
    email: str | None = None
    email_verified: bool = False
    name: str | None = None
    given_name: str | None = None
    family_name: str | None = None
    picture: str | None = None
    locale: str | None = None

    model_config = {"extra": "ignore"}

    @property
    def display_name(self) -> str:
        """Name claim, falling back to the email local part."""
        if self.name:
            return self.name
        if self.email:
            return self.email.split("@")[0]
        return "User"


class ProviderInfo(BaseModel):
    """Login provider entry."""

    id: str
    name: str
    login_url: str


class LoginPageResponse(BaseModel):
    """Providers available on the login page."""

    providers: list[ProviderInfo]
