"""
Base models package.

Provides the declarative base, abstract base models and enums
for all database models.
"""

from app.models.base.base_model import Base, BaseModel, TimestampModel, generate_id
from app.models.base.enums import BookingStatus, ScheduleStatus, enum_values

__all__ = [
    "Base",
    "BaseModel",
    "TimestampModel",
    "generate_id",
    "BookingStatus",
    "ScheduleStatus",
    "enum_values",
]
