from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple
import uuid

from sqlalchemy import select as sa_select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, AsyncConnection

from ...errors import StoreError
from ...helpers import now_ts
from ...infra.sql import Gated, raise_for_db
from ..donation import Base, DonationPassRow, FIELD_COLUMNS, row_to_document


async def create_schema(conn: AsyncConnection):
    await conn.run_sync(Base.metadata.create_all)


def _column(field: str):
    col = FIELD_COLUMNS.get(field)
    if col is None:
        raise StoreError(f"unknown attribute: {field}")
    return col


class PassStore:
    def __init__(
        self, *, db: AsyncSession, gated: Gated,
    ) -> None:
        self.db = db
        self.gated = gated

    async def create_document(self, data: Dict[str, Any]) -> Dict[str, Any]:
        row = DonationPassRow(id=uuid.uuid4().hex, created_at=now_ts())
        for field, value in data.items():
            setattr(row, _column(field).key, value)
        try:
            async with self.gated():
                async with self.db.begin():
                    self.db.add(row)
        except (SQLAlchemyError, OSError) as e:
            raise_for_db(e, "create document")
        return row_to_document(row)

    async def list_documents(
        self, *,
        equal: Optional[Tuple[str, Any]] = None,
        order_desc: Optional[str] = None,
        limit: int = 25,
        select: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        stmt = sa_select(DonationPassRow)
        if equal is not None:
            field, value = equal
            stmt = stmt.where(_column(field) == value)
        if order_desc is not None:
            stmt = stmt.order_by(_column(order_desc).desc())
        stmt = stmt.limit(max(1, int(limit)))

        try:
            async with self.gated():
                async with self.db.begin():
                    result = await self.db.execute(stmt)
                    rows = result.scalars().all()
        except (SQLAlchemyError, OSError) as e:
            raise_for_db(e, "list documents")

        docs = [row_to_document(r) for r in rows]
        if select:
            keep = ["$id", *select]
            docs = [{k: d[k] for k in keep if k in d} for d in docs]
        return docs
