"""Shared API dependencies for authentication and service access."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from publish_stage.services.container import Services

# HTTP Bearer scheme for session tokens; missing credentials are reported as 401 below
bearer_scheme = HTTPBearer(auto_error=False)


def get_services(request: Request) -> Services:
    """Return the service graph attached to the running application."""
    services: Services = request.app.state.services
    return services


# Type alias for the service graph dependency
ServicesDep = Annotated[Services, Depends(get_services)]


def get_current_address(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    services: ServicesDep,
) -> str:
    """Resolve the session token in the Authorization header to an address.

    Args:
        credentials: HTTP Bearer token credentials, if any
        services: Application service graph

    Returns:
        Lowercased address the token was issued to

    Raises:
        HTTPException: If the token is missing, malformed or expired
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="missing_token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    address = services.tokens.verify(credentials.credentials)
    if address is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return address


# Type alias for current address dependency
CurrentAddressDep = Annotated[str, Depends(get_current_address)]
