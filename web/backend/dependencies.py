#!/usr/bin/env python3
"""
FastAPI dependencies for dependency injection.

Tests replace get_workflow_engine through app.dependency_overrides.
"""

from functools import lru_cache

from core.app_context import AppContext
from core.workflow import WorkflowEngine
from .config import get_config


@lru_cache()
def get_app_context() -> AppContext:
    """Wire the application once per process (loads and validates the rubric)."""
    return AppContext.build(get_config())


def get_workflow_engine() -> WorkflowEngine:
    """
    FastAPI dependency that returns the shared workflow engine.

    Usage:
        @router.post("/endpoint")
        def my_endpoint(engine: WorkflowEngine = Depends(get_workflow_engine)):
            ...
    """
    return get_app_context().engine
