"""PlanetHoster access-log exporter.

Fetches daily access logs for every domain of a hosting account through the
rate-limited PlanetHoster API, converts them to Apache combined log format
and uploads the files to N0C object storage.
"""

__version__ = "1.0.0"
