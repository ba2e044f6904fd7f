"""
Core Layer - Domain entities, exceptions and ports.

Nothing in here performs I/O; adapters supply the implementations.
"""
