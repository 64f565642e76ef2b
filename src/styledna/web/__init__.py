"""HTTP boundary for styledna."""

from styledna.web.app import create_app
from styledna.web.routes import client_address, router

__all__ = ["client_address", "create_app", "router"]
