"""
App assembly entry point.

Re-exports the FastAPI `app` from `orgspace.api.main` so `uvicorn app:app`
works from the repository root.
"""

from orgspace.api.main import app  # noqa: F401
