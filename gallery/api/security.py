"""Bearer authentication dependencies.

Whether a route family requires a credential is a deployment choice
(``auth.require_for_gallery`` / ``auth.require_for_image_url``).
"""

import logging
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette import status

from gallery.api.dependencies import AppState, get_app_state
from gallery.auth import UserIdentity
from gallery.config import AppConfig
from gallery.errors import AuthenticationError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def bearer_auth(policy: str) -> Callable:
    """Build a dependency enforcing the named ``auth`` policy flag.

    Args:
        policy: Attribute of ``AuthConfig`` telling whether a credential
            is required.

    Returns:
        Dependency resolving to the caller identity, or None when the
        policy does not require a credential.
    """

    async def dependency(
        credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
        state: AppState = Depends(get_app_state),
    ) -> Optional[UserIdentity]:
        config = state.config or AppConfig()
        if not getattr(config.auth, policy):
            return None

        # Missing header and non-Bearer schemes both arrive as None
        if credentials is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unauthorized, please log in",
            )
        if state.auth_verifier is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication not available",
            )

        try:
            return state.auth_verifier.verify(credentials.credentials)
        except AuthenticationError as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=str(e),
            ) from e

    return dependency


require_gallery_user = bearer_auth("require_for_gallery")
require_image_url_user = bearer_auth("require_for_image_url")
