"""Domain layer — snapshots, errors, and state enums.

This layer depends only on stdlib and pydantic.
It must never import from bus, clients, services, commands, or config.
"""
