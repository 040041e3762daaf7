"""API route handlers."""

from .webhook import router as webhook_router
from .decisions import router as decisions_router
from .workflows import router as workflows_router
