"""FastAPI transport for the Stripe payment app."""
