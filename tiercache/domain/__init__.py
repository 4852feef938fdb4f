"""Domain Layer: value objects, errors and the store contract.

Has no dependency on the core or infrastructure layers.
"""
