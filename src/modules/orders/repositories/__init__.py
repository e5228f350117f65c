"""Order persistence: the repository contract and its Django ORM backend."""

from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.repositories.interfaces import IOrderRepository

__all__ = ["OrderDjangoRepository", "IOrderRepository"]
