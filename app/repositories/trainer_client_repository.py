from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.trainer_client import TrainerClient
from app.models.user import User


class TrainerClientRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_link(self, trainer_id: int, client_id: int) -> Optional[TrainerClient]:
        result = await self.db.execute(
            select(TrainerClient).where(
                TrainerClient.trainer_id == trainer_id,
                TrainerClient.client_id == client_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_linked_client(self, trainer_id: int, client_id: int) -> Optional[User]:
        result = await self.db.execute(
            select(User)
            .join(TrainerClient, TrainerClient.client_id == User.id)
            .options(selectinload(User.client_profile))
            .where(TrainerClient.trainer_id == trainer_id, User.id == client_id)
        )
        return result.scalar_one_or_none()

    async def list_clients(self, trainer_id: int) -> List[User]:
        result = await self.db.execute(
            select(User)
            .join(TrainerClient, TrainerClient.client_id == User.id)
            .options(selectinload(User.client_profile))
            .where(TrainerClient.trainer_id == trainer_id)
            .order_by(TrainerClient.created_at.desc())
        )
        return result.scalars().all()

    async def get_trainer_for(self, client_id: int) -> Optional[User]:
        """First trainer linked to a client."""
        result = await self.db.execute(
            select(User)
            .join(TrainerClient, TrainerClient.trainer_id == User.id)
            .where(TrainerClient.client_id == client_id)
            .order_by(TrainerClient.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create_link(self, trainer_id: int, client_id: int, commit: bool = True) -> TrainerClient:
        link = TrainerClient(trainer_id=trainer_id, client_id=client_id, status="active")
        self.db.add(link)
        if commit:
            await self.db.commit()
        return link

    async def delete_link(self, link: TrainerClient) -> None:
        await self.db.delete(link)
        await self.db.commit()
