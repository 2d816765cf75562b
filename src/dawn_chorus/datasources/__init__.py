"""External data source integrations.

Each subdirectory is one data source with a consistent structure:

    datasources/{name}/
    ├── __init__.py       # Public API re-exports
    ├── client.py         # API URLs, constants, request construction
    └── {feature}.py      # Parsing into ``schemas`` models

Current sources:
  - ebird/   recent nearby bird observations

Adding a new datasource
-----------------------
1. Create ``datasources/{name}/`` with files above.
2. Raise ``NotConfigured`` / ``UpstreamUnavailable`` from ``dawn_chorus.errors``
   so the aggregation layer can map failures to HTTP responses.
3. Re-export public API in ``__init__.py`` with ``__all__``.
4. Add tests in ``tests/test_{name}.py``.
"""
