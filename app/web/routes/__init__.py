"""
Route modules for the trade journal importer API.
"""

from .imports import router as imports_router
from .accounts import router as accounts_router
from .system import router as system_router

__all__ = [
    'imports_router',
    'accounts_router',
    'system_router',
]
