"""
Shared Kernel

Domain building blocks (entities, value objects, aggregates, events) and
application plumbing (unit of work, message bus, keyed locks) used by the
apps in this project.
"""
