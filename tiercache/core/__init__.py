"""Core Layer: value coercion, expiration policy and key building.

Depends on the domain layer only; concrete stores are injected through the
CacheStore interface.
"""
