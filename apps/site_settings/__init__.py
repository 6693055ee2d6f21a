"""Site settings app package.

Stores the singleton ``AppSettings`` row edited by staff and exposes the
read-only provider the booking engine consults on every request: the
optional booking access password and the turnaround buffer in days.
"""
