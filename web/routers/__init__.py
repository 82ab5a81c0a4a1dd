"""API routers mounted by ``web.main``."""

from . import subscription

__all__ = ["subscription"]
