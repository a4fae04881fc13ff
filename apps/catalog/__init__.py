"""Catalog app package.

Holds the bookable resources (properties and activities) and the add-ons
that can be attached to a stay. The booking engine only reads this data,
through the snapshot lookup in ``apps.catalog.services``.
"""
