"""Approval history model.

Records every committed status transition of a request.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from expenseflow.db.base import Base


class ApprovalHistory(Base):
    """
    Records all state transitions for expense claims and purchase orders.

    Provides a complete audit trail of the approval workflow. Rows are
    never deleted by workflow logic.
    """
    __tablename__ = "approval_history"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    request_kind = Column(String(50), nullable=False)
    request_id = Column(Uuid, nullable=False, index=True)

    # Transition details
    from_status = Column(String(50), nullable=False)
    to_status = Column(String(50), nullable=False)
    action = Column(String(20), nullable=False)

    # Actor
    actor_id = Column(Uuid, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    actor_role = Column(String(20), nullable=False)

    comment = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Relationships
    actor = relationship("Profile")

    def __repr__(self) -> str:
        return f"<ApprovalHistory {self.from_status} -> {self.to_status}>"
