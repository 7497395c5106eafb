"""Client directory collaborator.

The directory owns client records; the order desk only resolves them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from .domain import Client
from .errors import NotFoundError
from .repository import InMemoryRepository


class ClientDirectory(ABC):
    """Read-only lookup of client records by id."""

    @abstractmethod
    def resolve(self, client_id: str) -> Client:
        """Return the client or raise :class:`NotFoundError`."""

    @abstractmethod
    def list(self) -> List[Client]:
        ...

    def find(self, client_id: str) -> Optional[Client]:
        try:
            return self.resolve(client_id)
        except NotFoundError:
            return None


class InMemoryClientDirectory(ClientDirectory):
    def __init__(self, clients: Optional[Iterable[Client]] = None) -> None:
        self._clients: InMemoryRepository[Client] = InMemoryRepository()
        for client in clients or ():
            self.register(client)

    def __contains__(self, client_id: object) -> bool:
        return client_id in self._clients

    def __len__(self) -> int:
        return len(self._clients)

    def register(self, client: Client) -> Client:
        self._clients.add(client.id, client)
        return client

    def resolve(self, client_id: str) -> Client:
        if client_id not in self._clients:
            raise NotFoundError(f"Client {client_id!r} does not exist")
        return self._clients.get(client_id)

    def list(self) -> List[Client]:
        return self._clients.list()


__all__ = ["ClientDirectory", "InMemoryClientDirectory"]
