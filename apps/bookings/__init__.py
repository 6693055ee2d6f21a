"""Bookings app package.

The availability and booking engine: reservations of catalog items for
inclusive date ranges, turnaround buffers after each rental, single and
multi-item (group) submissions that are all-or-nothing, and per-item
locking so two overlapping blocking reservations can never coexist.
"""
