# app/routers/__init__.py

from . import potluck

__all__ = ["potluck"]
