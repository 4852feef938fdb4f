"""Domain Interfaces (Ports):

Defines the contracts (Abstract Base Classes) that backing stores must
implement. Core logic depends on these interfaces, not on concrete stores.
"""
