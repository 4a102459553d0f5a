"""
Prometheus exporter for IBM DS8000 storage systems.

The package is organised as:
- connection: HTTPS transport to the DS8K REST API
- client: per-scrape authenticated client handle
- cache: authentication token cache shared between scrapes
- collectors: resource collectors (system, pool, volume, performance) and their registry
- orchestrator: the Prometheus collector that fans out scrapes across targets
"""

__version__ = "1.0.0"
