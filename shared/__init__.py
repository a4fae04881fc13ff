"""
Shared Kernel

Base classes and utilities shared by the catalog, finances and bookings
contexts: DDD building blocks, money and date-range value objects, the unit of
work, the message bus and engine configuration access.
"""
