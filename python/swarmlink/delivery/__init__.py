from .dispatcher import QueueDispatcher
from .router import DeliveryChannel, DeliveryResult, DeliveryRouter

__all__ = ["DeliveryChannel", "DeliveryResult", "DeliveryRouter", "QueueDispatcher"]
