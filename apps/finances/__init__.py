"""Finances app package.

This app owns the externally configured rate rules (service fee, tax,
currency, rounding and default minimum stay) that the booking engine
prices with. Rules are stored as editable key/value settings and read
through a cached provider that falls back to last-known-good values.
"""
