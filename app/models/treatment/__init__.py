from app.models.treatment.service import Service

__all__ = ["Service"]
