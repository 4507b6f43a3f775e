"""Request database models.

Expense claims and purchase orders share the columns the approval
workflow reads (id, amount, status, submitter, created_at) through
``ApprovalRequestMixin``; their descriptive fields are opaque to it.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric, Text, Uuid
from sqlalchemy.orm import declared_attr, relationship

from expenseflow.db.base import Base


class RequestKind(str, Enum):
    """The two kinds of request routed through approval."""
    EXPENSE = "expenses"
    PURCHASE_ORDER = "purchase_orders"

    @property
    def label(self) -> str:
        return "Expense claim" if self is RequestKind.EXPENSE else "Purchase order"


class ApprovalRequestMixin:
    """Columns shared by every request kind."""

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    amount = Column(Numeric(12, 2), nullable=False)

    # Workflow state
    status = Column(String(50), nullable=False, default="pending_manager", index=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @declared_attr
    def submitter_id(cls):
        return Column(Uuid, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True)

    @declared_attr
    def submitter(cls):
        return relationship("Profile")


class ExpenseClaim(ApprovalRequestMixin, Base):
    """An employee's claim for reimbursement of an expense."""
    __tablename__ = "expenses"

    kind = RequestKind.EXPENSE

    title = Column(String(255), nullable=False)
    category = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    receipt_url = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ExpenseClaim {self.title} {self.amount} [{self.status}]>"


class PurchaseOrder(ApprovalRequestMixin, Base):
    """A request to buy goods from a vendor. ``amount`` is the total cost."""
    __tablename__ = "purchase_orders"

    kind = RequestKind.PURCHASE_ORDER

    vendor_name = Column(String(255), nullable=False)
    item_details = Column(Text, nullable=False)

    @property
    def total_cost(self):
        return self.amount

    def __repr__(self) -> str:
        return f"<PurchaseOrder {self.vendor_name} {self.amount} [{self.status}]>"


REQUEST_MODELS = {
    RequestKind.EXPENSE: ExpenseClaim,
    RequestKind.PURCHASE_ORDER: PurchaseOrder,
}


def model_for(kind: RequestKind):
    """Return the ORM model backing a request kind."""
    return REQUEST_MODELS[RequestKind(kind)]
