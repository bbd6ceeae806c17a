"""API routes package.

Routers are organized by caller:

- configurations: Dashboard management of configuration entries and channel mappings
- webhooks: Platform transaction session webhooks and inbound Stripe events

All routers are registered in main.py with /api prefix.
"""

from stripe_app.api.routes.configurations import router as configurations_router
from stripe_app.api.routes.webhooks import router as webhooks_router

__all__ = [
    "configurations_router",
    "webhooks_router",
]
