"""Expense claim and purchase order API endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    UploadFile,
    status,
)
from pydantic import BaseModel, Field

from expenseflow.api.deps import (
    get_current_actor,
    get_notifier,
    get_object_store,
    get_workflow_service,
)
from expenseflow.api.errors import http_error
from expenseflow.api.schemas.common import PaginatedResponse
from expenseflow.core.approval import (
    Actor,
    ApprovalAction,
    TransitionResult,
    WorkflowService,
    status_hint,
    status_label,
)
from expenseflow.core.errors import WorkflowError
from expenseflow.core.rbac import Role, is_approver
from expenseflow.db.models import RequestKind
from expenseflow.services import LocalObjectStore, NotificationDispatcher

router = APIRouter(prefix="/requests", tags=["requests"])


# Schemas
class RequestResponse(BaseModel):
    id: UUID
    kind: RequestKind
    amount: Decimal
    status: str
    status_label: str
    status_hint: str
    submitter_id: Optional[UUID]
    created_at: datetime

    # Expense claim fields
    title: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    receipt_url: Optional[str] = None

    # Purchase order fields
    vendor_name: Optional[str] = None
    item_details: Optional[str] = None


class ApprovalHistoryResponse(BaseModel):
    id: UUID
    from_status: str
    to_status: str
    action: str
    actor_id: Optional[UUID]
    actor_role: str
    comment: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class ActionBody(BaseModel):
    comment: Optional[str] = None


class TransitionResponse(BaseModel):
    request: RequestResponse
    from_status: str
    to_status: str
    action: str
    escalated: bool
    next_approver: Optional[str] = None


class PurchaseOrderCreate(BaseModel):
    vendor_name: str = Field(..., min_length=1, max_length=255)
    item_details: str = Field(..., min_length=1)
    total_cost: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)


def to_response(request, role: Role) -> RequestResponse:
    """Serialize a request of either kind as seen by ``role``."""
    return RequestResponse(
        id=request.id,
        kind=request.kind,
        amount=request.amount,
        status=request.status,
        status_label=status_label(request.status),
        status_hint=status_hint(request.status, role),
        submitter_id=request.submitter_id,
        created_at=request.created_at,
        title=getattr(request, "title", None),
        category=getattr(request, "category", None),
        description=getattr(request, "description", None),
        receipt_url=getattr(request, "receipt_url", None),
        vendor_name=getattr(request, "vendor_name", None),
        item_details=getattr(request, "item_details", None),
    )


def _can_view_all(actor: Actor) -> bool:
    return is_approver(actor.role) or actor.role == Role.ADMIN


def _check_visible(request, actor: Actor) -> None:
    if not _can_view_all(actor) and request.submitter_id != actor.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found")


def _transition_response(
    result: TransitionResult,
    service: WorkflowService,
    actor: Actor,
) -> TransitionResponse:
    request = service.get_request(result.kind, result.request_id)
    return TransitionResponse(
        request=to_response(request, actor.role),
        from_status=result.from_status.value,
        to_status=result.to_status.value,
        action=result.action.value,
        escalated=result.escalated,
        next_approver=result.next_approver.value if result.next_approver else None,
    )


# Endpoints
@router.post("/expenses", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def submit_expense(
    background_tasks: BackgroundTasks,
    title: str = Form(...),
    amount: Decimal = Form(...),
    category: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    receipt: Optional[UploadFile] = File(None),
    actor: Actor = Depends(get_current_actor),
    service: WorkflowService = Depends(get_workflow_service),
    notifier: NotificationDispatcher = Depends(get_notifier),
    store: LocalObjectStore = Depends(get_object_store),
):
    """Submit an expense claim with an optional receipt."""
    try:
        receipt_url = None
        if receipt is not None and receipt.filename:
            data = await receipt.read()
            receipt_url = store.store(data, receipt.filename, receipt.content_type)

        claim = service.submit_expense(
            actor,
            title,
            amount,
            category=category,
            description=description,
            receipt_url=receipt_url,
        )
    except WorkflowError as e:
        raise http_error(e)

    background_tasks.add_task(notifier.deliver_push)
    return to_response(claim, actor.role)


@router.post("/purchase_orders", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
def submit_purchase_order(
    order_in: PurchaseOrderCreate,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    service: WorkflowService = Depends(get_workflow_service),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """Submit a purchase order."""
    try:
        order = service.submit_purchase_order(
            actor,
            order_in.vendor_name,
            order_in.item_details,
            order_in.total_cost,
        )
    except WorkflowError as e:
        raise http_error(e)

    background_tasks.add_task(notifier.deliver_push)
    return to_response(order, actor.role)


@router.get("/{kind}", response_model=PaginatedResponse[RequestResponse])
def list_requests(
    kind: RequestKind,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status"),
    mine: bool = False,
    actor: Actor = Depends(get_current_actor),
    service: WorkflowService = Depends(get_workflow_service),
):
    """List requests of a kind. Employees only see their own."""
    submitter_id = actor.id if mine or not _can_view_all(actor) else None

    try:
        total = service.count_requests(kind, status=status_filter, submitter_id=submitter_id)
        requests = service.list_requests(
            kind,
            status=status_filter,
            submitter_id=submitter_id,
            limit=per_page,
            offset=(page - 1) * per_page,
        )
    except WorkflowError as e:
        raise http_error(e)

    return PaginatedResponse.create(
        items=[to_response(r, actor.role) for r in requests],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/{kind}/{request_id}", response_model=RequestResponse)
def get_request(
    kind: RequestKind,
    request_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: WorkflowService = Depends(get_workflow_service),
):
    """Get a specific request."""
    try:
        request = service.get_request(kind, request_id)
    except WorkflowError as e:
        raise http_error(e)

    _check_visible(request, actor)
    return to_response(request, actor.role)


@router.get("/{kind}/{request_id}/history", response_model=List[ApprovalHistoryResponse])
def get_request_history(
    kind: RequestKind,
    request_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: WorkflowService = Depends(get_workflow_service),
):
    """Get the status transition history of a request."""
    try:
        request = service.get_request(kind, request_id)
        _check_visible(request, actor)
        history = service.get_history(kind, request_id)
    except WorkflowError as e:
        raise http_error(e)

    return [ApprovalHistoryResponse.model_validate(h) for h in history]


@router.post("/{kind}/{request_id}/approve", response_model=TransitionResponse)
def approve_request(
    kind: RequestKind,
    request_id: UUID,
    background_tasks: BackgroundTasks,
    body: Optional[ActionBody] = None,
    actor: Actor = Depends(get_current_actor),
    service: WorkflowService = Depends(get_workflow_service),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """Approve a pending request."""
    return _act(kind, request_id, ApprovalAction.APPROVE, body, background_tasks, actor, service, notifier)


@router.post("/{kind}/{request_id}/reject", response_model=TransitionResponse)
def reject_request(
    kind: RequestKind,
    request_id: UUID,
    background_tasks: BackgroundTasks,
    body: Optional[ActionBody] = None,
    actor: Actor = Depends(get_current_actor),
    service: WorkflowService = Depends(get_workflow_service),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """Reject a pending request."""
    return _act(kind, request_id, ApprovalAction.REJECT, body, background_tasks, actor, service, notifier)


def _act(
    kind: RequestKind,
    request_id: UUID,
    action: ApprovalAction,
    body: Optional[ActionBody],
    background_tasks: BackgroundTasks,
    actor: Actor,
    service: WorkflowService,
    notifier: NotificationDispatcher,
) -> TransitionResponse:
    comment = body.comment if body else None
    try:
        result = service.act(kind, request_id, actor, action, comment)
        response = _transition_response(result, service, actor)
    except WorkflowError as e:
        raise http_error(e)

    background_tasks.add_task(notifier.deliver_push)
    return response
