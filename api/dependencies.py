"""
FastAPI dependencies.

The marketplace (store plus services) is built once per process from the
environment. Tests replace it through `app.dependency_overrides`.
"""

from __future__ import annotations

from functools import lru_cache

from services.marketplace import Marketplace, build_marketplace
from settings import load_settings


@lru_cache(maxsize=1)
def get_marketplace() -> Marketplace:
    return build_marketplace(load_settings())


__all__ = ["get_marketplace"]
