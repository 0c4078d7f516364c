"""Rate-limit scopes: named categories of limited operations."""

SCOPE_DEFAULT = "api.v1.default"
SCOPE_GENERATE = "api.v1.generate"
SCOPE_ADMIN = "api.v1.admin"

ALL_SCOPES = (SCOPE_DEFAULT, SCOPE_GENERATE, SCOPE_ADMIN)
