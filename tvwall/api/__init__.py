"""HTTP layer of the asset store: routers, dependencies and response helpers."""
