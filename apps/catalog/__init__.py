"""Catalog app package.

Holds the rentable ``Item`` records. Catalog metadata is maintained
through the Django admin; the booking engine only reads items and their
status to decide whether they can be reserved.
"""
