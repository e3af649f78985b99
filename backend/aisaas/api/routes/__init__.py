# API Routes Module
from aisaas.api.routes import (
    admin,
    billing,
    webhooks,
    workspaces,
)

__all__ = [
    "admin",
    "billing",
    "webhooks",
    "workspaces",
]
