"""FastAPI HTTP layer package.

Public re-export so callers can write::

    uvicorn harvester.api:app --reload
"""

from harvester.api.app import app

__all__ = ["app"]
