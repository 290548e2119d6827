"""Infrastructure Layer — stores, external service clients and logging setup.

Invariants:
    - Every external call maps its failures to ExternalServiceError or
      ConfigurationError (core/errors.py)
    - Both store backends satisfy core/repository_protocols.ReflectionStore

Design Decisions:
    - Thin wrappers over SDK/HTTP clients so services can be tested with fakes
"""
