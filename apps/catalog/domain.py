"""Read-only catalog snapshots consumed by the booking engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable
from uuid import UUID


class ResourceKind(str, Enum):
    """Discriminant for bookable resources and booking requests."""

    PROPERTY = "property"
    ACTIVITY = "activity"


@dataclass(frozen=True)
class ResourceSnapshot:
    """A property or activity as the engine sees it at request time.

    ``base_price`` is per night for properties and per participant for
    activities. ``security_deposit`` is informational only.
    """

    id: UUID
    kind: ResourceKind
    name: str
    base_price: Decimal
    max_occupancy: int
    minimum_stay: int | None = None
    cleaning_fee: Decimal | None = None
    security_deposit: Decimal | None = None
    duration_days: int = 1
    is_active: bool = True
    min_participants: int = 1

    @property
    def is_property(self) -> bool:
        return self.kind is ResourceKind.PROPERTY


@dataclass(frozen=True)
class CatalogItem:
    """An add-on with its current catalog price."""

    id: UUID
    name: str
    unit_price: Decimal
    is_active: bool = True


class Catalog(ABC):
    """Lookup port for resources and add-ons."""

    @abstractmethod
    def get_resource(self, resource_id: UUID) -> ResourceSnapshot | None:
        """Return the resource or ``None`` when it does not exist."""

    @abstractmethod
    def get_add_on(self, add_on_id: UUID) -> CatalogItem | None:
        """Return the add-on or ``None`` when it does not exist."""

    def get_activity(self, activity_id: UUID) -> ResourceSnapshot | None:
        resource = self.get_resource(activity_id)
        if resource is None or resource.kind is not ResourceKind.ACTIVITY:
            return None
        return resource


class InMemoryCatalog(Catalog):
    """Catalog backed by plain dictionaries (embedded use and tests)."""

    def __init__(
        self,
        resources: Iterable[ResourceSnapshot] = (),
        add_ons: Iterable[CatalogItem] = (),
    ) -> None:
        self._resources = {resource.id: resource for resource in resources}
        self._add_ons = {item.id: item for item in add_ons}

    def add_resource(self, resource: ResourceSnapshot) -> None:
        self._resources[resource.id] = resource

    def add_add_on(self, item: CatalogItem) -> None:
        self._add_ons[item.id] = item

    def get_resource(self, resource_id: UUID) -> ResourceSnapshot | None:
        return self._resources.get(resource_id)

    def get_add_on(self, add_on_id: UUID) -> CatalogItem | None:
        return self._add_ons.get(add_on_id)
