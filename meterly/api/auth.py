"""Session authentication through Auth0."""

from typing import Optional

from fastapi import Request
from fastapi_auth0 import Auth0, Auth0User

from meterly.core.config import settings
from meterly.core.logging import logger

MOCK_USER_ID = "mock-user-id"


def build_auth0_user(sub: str, email: Optional[str]) -> Auth0User:
    """Build a principal the way a verified token would populate it.

    ``Auth0User.email`` is read from a namespaced claim, so the value is
    passed under the field's alias rather than as ``email=``.
    """
    email_field = Auth0User.model_fields["email"]
    return Auth0User.model_validate({"sub": sub, email_field.alias or "email": email})


class MockAuth0:
    """Stand-in used when AUTH_ENABLED=False; every caller is the first superuser."""

    def __init__(self):
        """Initialize the mock Auth0 instance without any network access."""
        self.domain = "mock-domain.auth0.com"
        self.audience = "https://mock-api/"
        self.auth0_user_model = Auth0User

    async def get_user(self, request: Request) -> Auth0User:
        """Return the superuser of the settings the running app was built with."""
        services = getattr(request.app.state, "services", None)
        app_settings = services.settings if services is not None else settings
        return build_auth0_user(MOCK_USER_ID, app_settings.FIRST_SUPERUSER)


if settings.AUTH_ENABLED:
    auth0 = Auth0(
        domain=settings.AUTH0_DOMAIN,
        api_audience=settings.AUTH0_AUDIENCE,
        auto_error=False,
    )
else:
    auth0 = MockAuth0()
    logger.info("Using mock Auth0 instance because AUTH_ENABLED=False")
