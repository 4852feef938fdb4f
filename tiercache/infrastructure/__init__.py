"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the library to the outside world (in-process memory, local disk,
Redis) by implementing the CacheStore interface defined in the domain layer.
Also includes configuration and logging setup.
"""
