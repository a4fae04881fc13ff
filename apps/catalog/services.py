"""ORM-backed catalog lookup."""

from __future__ import annotations

from uuid import UUID

from .domain import Catalog, CatalogItem, ResourceSnapshot
from .models import AddOn, Resource


class DjangoCatalog(Catalog):
    """Reads catalog rows and hands out immutable snapshots."""

    def get_resource(self, resource_id: UUID) -> ResourceSnapshot | None:
        resource = Resource.objects.filter(pk=resource_id).first()
        return resource.to_snapshot() if resource else None

    def get_add_on(self, add_on_id: UUID) -> CatalogItem | None:
        add_on = AddOn.objects.filter(pk=add_on_id).first()
        return add_on.to_item() if add_on else None
