from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, Request, status

from liftlog.config.settings import AuthMode, Settings


@dataclass
class Principal:
    """The identity that submits jobs and owns the resulting workout entries."""

    user_id: str
    roles: list[str]


def get_settings(request: Request) -> Settings:
    """Dependency returning the Settings the application was built with."""
    return request.app.state.settings


async def get_principal(
    request: Request,
    x_user_id: str | None = Header(None, alias="X-User-ID"),
) -> Principal:
    """
    Dependency injection function to get the current principal.

    Behavior based on AUTH_MODE:
    - none: Returns the dev default user
    - dev: Trusts the X-User-ID header
    - oidc: Token verification is delegated to the fronting gateway and
      not available in this service
    """
    settings = get_settings(request)
    if settings.auth_mode == AuthMode.NONE:
        return Principal(user_id=settings.dev_user_id, roles=["admin"])
    elif settings.auth_mode == AuthMode.DEV:
        if not x_user_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="X-User-ID header is required in dev auth mode",
            )
        return Principal(user_id=x_user_id, roles=["user"])
    elif settings.auth_mode == AuthMode.OIDC:
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail="OIDC auth mode is not supported by this service",
        )
    else:
        raise ValueError(f"Unknown auth mode: {settings.auth_mode}")


# Convenience type aliases for dependency injection
PrincipalDep = Depends(get_principal)
SettingsDep = Depends(get_settings)
