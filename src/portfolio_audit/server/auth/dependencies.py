"""
FastAPI authentication dependencies.

Authentication and session issuance belong to the host application. It binds
its resolver with:

    app.dependency_overrides[get_current_actor] = resolve_actor_from_session

Until then every protected endpoint answers 401.
"""

import logging

from fastapi import Depends, HTTPException, status

from ...versioning.models import Actor

logger = logging.getLogger(__name__)

UNAUTHENTICATED_MESSAGE = "Bu bilgilere erişim yetkiniz bulunmamaktadır."
FORBIDDEN_MESSAGE = "Bu işlemi yapmak için yönetici yetkiniz bulunmamaktadır."


def get_current_actor() -> Actor:
    """Resolve the authenticated actor; overridden by the host application."""
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": UNAUTHENTICATED_MESSAGE},
    )


def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    """
    Require the admin role.

    Raises:
        HTTPException 403: If the actor is not an admin
    """
    if not actor.is_admin:
        logger.warning(f"Admin endpoint denied for {actor.identity} (role={actor.role})")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": FORBIDDEN_MESSAGE},
        )
    return actor
