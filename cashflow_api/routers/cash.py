"""
Cashflow router. Every endpoint requires an authorized caller and only touches
that caller's records.
"""
import logging
import math
import uuid

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from cashflow_api.core.deps import extract_authorized_user_id, get_current_identity
from cashflow_api.core.errors import AuthorizationError, NotFoundError
from cashflow_api.db.session import get_db
from cashflow_api.schemas.cashflow import CashflowCreate, CashflowList, CashflowResponse, CashflowUpdate
from cashflow_api.schemas.common import ApiResponse, ErrorResponse, PaginatedResponse, Pagination
from cashflow_api.services.cashflow import CashflowService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/cash",
    tags=["cashflow"],
    dependencies=[Depends(get_current_identity)],
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    },
)

# Keeps the SQL offset well inside a 64-bit integer
MAX_PAGE = 100_000


def get_cashflow_service(request: Request, db: Session = Depends(get_db)) -> CashflowService:
    """Service bound to the user resolved by the authorization gate."""
    user_id = extract_authorized_user_id(request)
    if user_id is None:
        logger.warning("Cashflow request without a resolved identity at %s", request.url.path)
        raise AuthorizationError()
    return CashflowService(db, user_id)


def _not_found(cashflow_id: uuid.UUID) -> NotFoundError:
    return NotFoundError(f"Cashflow not found: {cashflow_id}")


@router.get("", response_model=PaginatedResponse[CashflowList])
def list_cashflows(
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(10, ge=1, le=100),
    service: CashflowService = Depends(get_cashflow_service),
):
    """List the caller's cashflows, newest first, with the overall sum."""
    result = service.list(page=page, limit=limit)
    return PaginatedResponse(
        data=CashflowList(
            cashflows=[CashflowResponse.model_validate(c) for c in result.items],
            sum=float(result.sum),
            count=result.total,
        ),
        pagination=Pagination(
            page=page,
            limit=limit,
            total=result.total,
            totalPages=math.ceil(result.total / limit) if result.total else 0,
        ),
    )


@router.post("", response_model=ApiResponse[CashflowResponse], status_code=status.HTTP_201_CREATED)
def create_cashflow(
    payload: CashflowCreate,
    service: CashflowService = Depends(get_cashflow_service),
):
    cashflow = service.add(payload.amount, payload.description, payload.date)
    return ApiResponse(data=CashflowResponse.model_validate(cashflow), message="Cashflow created")


@router.get("/{cashflow_id}", response_model=ApiResponse[CashflowResponse])
def get_cashflow(
    cashflow_id: uuid.UUID,
    service: CashflowService = Depends(get_cashflow_service),
):
    cashflow = service.get(cashflow_id)
    if cashflow is None:
        raise _not_found(cashflow_id)
    return ApiResponse(data=CashflowResponse.model_validate(cashflow))


@router.put("/{cashflow_id}", response_model=ApiResponse[CashflowResponse])
def update_cashflow(
    cashflow_id: uuid.UUID,
    payload: CashflowUpdate,
    service: CashflowService = Depends(get_cashflow_service),
):
    cashflow = service.update(cashflow_id, payload.amount, payload.description, payload.date)
    if cashflow is None:
        raise _not_found(cashflow_id)
    return ApiResponse(data=CashflowResponse.model_validate(cashflow), message="Cashflow updated")


@router.delete("/{cashflow_id}", response_model=ApiResponse[dict])
def delete_cashflow(
    cashflow_id: uuid.UUID,
    service: CashflowService = Depends(get_cashflow_service),
):
    if not service.delete(cashflow_id):
        raise _not_found(cashflow_id)
    return ApiResponse(data={"id": str(cashflow_id)}, message="Cashflow deleted")
