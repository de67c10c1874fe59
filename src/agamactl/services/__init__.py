"""Service layer — operations returning ServiceResult.

Services may import from clients, bus, and domain.
They must never import from commands or output.
"""
