"""
Core utilities: shared exceptions and cross-cutting concerns used across
the transaction source, detectors, live feed, and API server.
"""
