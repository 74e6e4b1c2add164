"""Authorization decisions the ledger delegates to its caller's policy."""

from abc import ABC, abstractmethod
from collections.abc import Iterable

from ledger.domain import Actor, Role, Trip


class AccessPolicy(ABC):
    @abstractmethod
    def can_cancel_sale(self, actor: Actor, trip: Trip) -> bool:
        ...


class TripOwnerOrElevatedPolicy(AccessPolicy):
    """The trip's creator, or anyone holding an elevated role, may cancel."""

    def __init__(self, elevated_roles: Iterable[Role] = (Role.ADMIN, Role.IT)) -> None:
        self._elevated = frozenset(elevated_roles)

    def can_cancel_sale(self, actor: Actor, trip: Trip) -> bool:
        return actor.role in self._elevated or actor.id == trip.owner_id
