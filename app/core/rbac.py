from fastapi import Depends, HTTPException, status

from app.core.dependencies import get_current_user
from app.models.user import User, RoleEnum
from app.repositories.trainer_client_repository import TrainerClientRepository


def require_role(*allowed_roles: RoleEnum):
    """Dependency factory that only lets the given roles through."""
    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="No tienes permiso para realizar esta acción",
            )
        return current_user
    return role_checker


def ensure_self(current_user: User, user_id: int) -> None:
    """Clients may only touch their own resources."""
    if current_user.id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No tienes permiso para acceder a los datos de otro usuario",
        )


async def ensure_linked_client(
    links: TrainerClientRepository,
    trainer: User,
    client_id: int,
    status_code: int = status.HTTP_404_NOT_FOUND,
) -> User:
    """The client, if it is linked to the trainer; otherwise 404 (or 403)."""
    client = await links.get_linked_client(trainer.id, client_id)
    if client is None:
        detail = ("No tienes acceso a este cliente" if status_code == status.HTTP_403_FORBIDDEN
                  else "Cliente no encontrado")
        raise HTTPException(status_code=status_code, detail=detail)
    return client


require_admin = require_role(RoleEnum.admin)
require_trainer = require_role(RoleEnum.trainer)
require_client = require_role(RoleEnum.client)
require_trainer_or_admin = require_role(RoleEnum.trainer, RoleEnum.admin)
