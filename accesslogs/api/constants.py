"""Constants for the PlanetHoster API."""

# Endpoint paths, relative to the API base URL
PATH_HELLO = "hello"
PATH_HOSTINGS = "hostings"
PATH_HOSTING_DOMAINS = "hosting/domains"
PATH_HOSTING_STORAGE = "hosting/n0c-storage"
PATH_ACCESS_LOGS = "hosting/domain/access-logs"

# Response envelope keys
FIELD_DATA = "data"
FIELD_HOSTING_ACCOUNTS = "hosting_accounts"

# Default access-log page size
DEFAULT_PAGE_SIZE = 100
