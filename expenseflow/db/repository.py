"""Record store access for approval requests."""

from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from expenseflow.db.models.request import RequestKind, model_for


class RequestRepository:
    """
    Reads and writes expense claims and purchase orders.

    Status changes go through ``update_status`` only, which is a
    compare-and-swap on the status the caller observed.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, kind: RequestKind, request_id: UUID):
        model = model_for(kind)
        return self.db.query(model).filter(model.id == request_id).first()

    def update_status(
        self,
        kind: RequestKind,
        request_id: UUID,
        expected: Iterable[str],
        new_status: str,
    ) -> int:
        """
        Set ``status`` only if it still holds one of ``expected``.

        Does not commit.

        Returns:
            Number of rows updated, 0 when the status moved on
        """
        model = model_for(kind)
        expected = [getattr(s, "value", s) for s in expected]
        stmt = (
            update(model)
            .where(model.id == request_id, model.status.in_(expected))
            .values(status=getattr(new_status, "value", new_status), updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        return result.rowcount

    def list(
        self,
        kind: RequestKind,
        *,
        statuses: Optional[Iterable[str]] = None,
        submitter_id: Optional[UUID] = None,
        newest_first: bool = True,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List:
        """List requests of a kind, filtered by status and submitter."""
        model = model_for(kind)
        query = self.db.query(model)

        if statuses is not None:
            query = query.filter(model.status.in_([getattr(s, "value", s) for s in statuses]))
        if submitter_id is not None:
            query = query.filter(model.submitter_id == submitter_id)

        order = model.created_at.desc() if newest_first else model.created_at.asc()
        query = query.order_by(order).offset(offset)
        if limit is not None:
            query = query.limit(limit)

        return query.all()

    def add(self, request):
        """Insert a new request. Does not commit."""
        self.db.add(request)
        self.db.flush()
        return request

    def count(
        self,
        kind: RequestKind,
        *,
        statuses: Optional[Iterable[str]] = None,
        submitter_id: Optional[UUID] = None,
    ) -> int:
        model = model_for(kind)
        query = self.db.query(model)

        if statuses is not None:
            query = query.filter(model.status.in_([getattr(s, "value", s) for s in statuses]))
        if submitter_id is not None:
            query = query.filter(model.submitter_id == submitter_id)

        return query.count()
