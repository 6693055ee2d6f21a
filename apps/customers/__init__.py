"""Customers app package.

Customers book without an account: a ``Profile`` is created the first
time an email address submits a booking and reused afterwards. The
identity resolver in ``services`` deduplicates addresses
case-insensitively and infers an organization from non-webmail domains.
"""
