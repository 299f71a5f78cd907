from app.repositories.treatment.service_repository import ServiceRepository

__all__ = ["ServiceRepository"]
