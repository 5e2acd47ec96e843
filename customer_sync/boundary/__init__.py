"""
Boundary layer for external system integrations.

Handles all interactions with external systems (database, upstream customer API).
Provides adapters and clients for infrastructure dependencies.
"""
