"""
Service catalog repository.
"""

from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.treatment.service import Service
from app.repositories.base.base_repository import BaseRepository


class ServiceRepository(BaseRepository[Service]):
    """Read access to the treatment catalog."""

    def __init__(self, db: Session):
        super().__init__(Service, db)

    def list_active(self) -> List[Service]:
        return self._all(
            select(Service).where(Service.is_active.is_(True)).order_by(Service.name, Service.id)
        )
