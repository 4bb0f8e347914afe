from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ...config import Settings
from ...core.table import paginate, sort_records
from ...domain.models import GdpRecord, RecordCreated, RecordPage, RecordSubmission, RecordValueUpdate
from ...security.rbac import Permission, require_permission
from ...services.record_gateway import RecordGateway
from ..dependencies import get_gateway, get_settings

router = APIRouter(prefix="/records", tags=["records"])


@router.get("", response_model=RecordPage)
def list_records(
    sort: str = Query("year", description="year | value | country"),
    direction: str = Query("ascending", description="ascending | descending"),
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    gateway: RecordGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
    user=Depends(require_permission(Permission.RECORDS_READ)),
) -> RecordPage:
    size = settings.page_size if page_size is None else page_size
    revision = gateway.revision
    ordered = sort_records(gateway.list(), sort, direction)
    items, total_pages = paginate(ordered, page, size)
    return RecordPage(
        items=items,
        page=page,
        page_size=size,
        total=len(ordered),
        total_pages=total_pages,
        sort=sort,
        direction=direction,
        revision=revision,
    )


@router.post("", response_model=RecordCreated, status_code=status.HTTP_201_CREATED)
def create_record(
    payload: RecordSubmission,
    gateway: RecordGateway = Depends(get_gateway),
    user=Depends(require_permission(Permission.RECORDS_WRITE)),
) -> RecordCreated:
    record = gateway.submit(payload.model_dump())
    return RecordCreated(message=f"Successfully added record for {record.year}.", record=record)


@router.get("/{record_id}", response_model=GdpRecord)
def get_record(
    record_id: str,
    gateway: RecordGateway = Depends(get_gateway),
    user=Depends(require_permission(Permission.RECORDS_READ)),
) -> GdpRecord:
    return gateway.get(record_id)


@router.patch("/{record_id}", response_model=GdpRecord)
def update_record(
    record_id: str,
    payload: RecordValueUpdate,
    gateway: RecordGateway = Depends(get_gateway),
    user=Depends(require_permission(Permission.RECORDS_WRITE)),
) -> GdpRecord:
    return gateway.update(record_id, payload.value)


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_record(
    record_id: str,
    gateway: RecordGateway = Depends(get_gateway),
    user=Depends(require_permission(Permission.RECORDS_WRITE)),
) -> Response:
    gateway.delete(record_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
