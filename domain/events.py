"""Domain events published to external collaborators (sync, notifications)"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, Field

RESERVATION_CREATED_V1 = "booking.reservation.created.v1"


class DomainEvent(BaseModel):
    event_type: str
    occurred_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        frozen = True


class ReservationCreated(DomainEvent):
    event_type: str = RESERVATION_CREATED_V1
    reservation_id: int
    payload: Dict[str, Any] = {}


class EventPublisher(ABC):
    """Fire-and-forget event delivery"""

    @abstractmethod
    def publish(self, event: DomainEvent) -> None:
        """Schedule delivery and return immediately"""
        pass
