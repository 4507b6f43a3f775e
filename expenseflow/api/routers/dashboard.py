"""Dashboard API endpoints."""

from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from expenseflow.api.deps import get_current_actor, get_workflow_service
from expenseflow.api.routers.requests import RequestResponse, to_response
from expenseflow.core.approval import Actor, WorkflowService
from expenseflow.db.models import RequestKind

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


# Schemas
class ActionableGroup(BaseModel):
    items: List[RequestResponse]
    count: int


class ActionableResponse(BaseModel):
    role: str
    expenses: ActionableGroup
    purchase_orders: ActionableGroup
    total: int


class SummaryResponse(BaseModel):
    total: int
    pending: int
    approved_total: Decimal


# Endpoints
@router.get("/actionable", response_model=ActionableResponse)
def get_actionable(
    actor: Actor = Depends(get_current_actor),
    service: WorkflowService = Depends(get_workflow_service),
):
    """Requests waiting on the current user's role, oldest first."""
    groups = {}
    for kind, summary in service.dashboard(actor).items():
        groups[kind] = ActionableGroup(
            items=[to_response(r, actor.role) for r in summary.items],
            count=summary.count,
        )

    return ActionableResponse(
        role=actor.role.value,
        expenses=groups[RequestKind.EXPENSE.value],
        purchase_orders=groups[RequestKind.PURCHASE_ORDER.value],
        total=sum(g.count for g in groups.values()),
    )


@router.get("/summary", response_model=SummaryResponse)
def get_summary(
    actor: Actor = Depends(get_current_actor),
    service: WorkflowService = Depends(get_workflow_service),
):
    """Counts and approved total over the current user's own requests."""
    summary = service.submitter_summary(actor.id)
    return SummaryResponse(
        total=summary.total,
        pending=summary.pending,
        approved_total=summary.approved_total,
    )
