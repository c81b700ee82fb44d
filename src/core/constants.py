"""HTTP and artifact constants shared across the sync components."""

from typing import Final


# HTTP status codes
HTTP_STATUS_OK = 200
HTTP_STATUS_UNAUTHORIZED = 401
HTTP_STATUS_TOO_MANY_REQUESTS = 429
HTTP_STATUS_SERVER_ERROR_MIN = 500

# Authorization scheme expected by the catalog endpoint
AUTH_SCHEME: Final = "jwt"

# Endpoint paths relative to base_url
AUTH_PATH: Final = "/auth"
PRODUCTS_PATH: Final = "/v2/products"

# Sentinel for raw items without a sku
UNKNOWN_SKU: Final = "UNKNOWN_SKU"
DEFAULT_PRICE: Final = "0.00"

# Response body excerpt kept on errors
MAX_ERROR_BODY_CHARS = 2000

# Log component names
COMPONENT_AUTH = "auth"
COMPONENT_LOCK = "lock"
COMPONENT_FETCH = "fetch"
COMPONENT_PUBLISHER = "publisher"
COMPONENT_SYNC = "sync"
COMPONENT_CLI = "cli"
