#!/usr/bin/env python3
"""
Test suite configuration and utilities.

All tests run against an in-memory SQLite database, so no external
services are needed:

    python -m pytest tests/ -v

    # Using unittest
    python -m unittest discover tests -v

Set TEST_DATABASE_URL to run the same tests against PostgreSQL.
"""

import os
from typing import Optional

from sqlalchemy.orm import sessionmaker

TEST_DB_URL = os.environ.get("TEST_DATABASE_URL", "sqlite:///:memory:")


def make_test_session_factory(url: Optional[str] = None) -> sessionmaker:
    """Fresh engine with all tables created."""
    from database.database import make_engine, make_session_factory
    from database.models import Base

    engine = make_engine(url or TEST_DB_URL)
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    return make_session_factory(engine)
