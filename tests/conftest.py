"""Shared fixtures for SQL builder tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from cqrs_ddd_sql import SQLITE, FilterCompiler, TypedPool

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

PETS_DDL = (
    'CREATE TABLE "pets" ('
    '"id" TEXT PRIMARY KEY, '
    '"name" TEXT, '
    '"type" TEXT, '
    '"owner_id" TEXT, '
    '"notes" TEXT, '
    '"tags" TEXT)'
)


@pytest.fixture
def compiler() -> FilterCompiler:
    """Postgres-flavoured compiler ($n placeholders, ILIKE, ANY)."""
    return FilterCompiler()


@pytest.fixture
def sqlite_compiler() -> FilterCompiler:
    return FilterCompiler(SQLITE)


@pytest.fixture
async def pool(tmp_path: Path) -> AsyncGenerator[TypedPool, None]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'pets.db'}")
    typed_pool = TypedPool(engine, array_columns=["tags"])
    await typed_pool.query(PETS_DDL)
    yield typed_pool
    await typed_pool.close()
