"""Квитанции: список с фильтрами, CRUD, запчасти в квитанции, возврат денег."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from servicecenter.core.database import get_db
from servicecenter.core.dates import parse_date_param
from servicecenter.core.logging_config import get_logger
from servicecenter.core.security import RequireApiToken
from servicecenter.models import Repair
from servicecenter.schemas.repair import (
    PartsPaymentUpdate,
    RefundRequest,
    RepairCreate,
    RepairPartAdd,
    RepairPartUpdate,
    RepairUpdate,
)
from servicecenter.schemas.responses import part_to_response, repair_to_response, transaction_to_response
from servicecenter.services import ledger, repair_service, warehouse
from servicecenter.services.ledger import LedgerError
from servicecenter.services.repair_service import RepairError
from servicecenter.services.warehouse import PartError

router = APIRouter(prefix="/api/repairs", tags=["repairs"], dependencies=[RequireApiToken])
logger = get_logger(__name__)


async def _get_repair_or_404(db: AsyncSession, repair_id: int) -> Repair:
    repair = await repair_service.get_repair(db, repair_id)
    if not repair:
        raise HTTPException(status_code=404, detail="Ремонт не знайдено")
    return repair


def _parse_statuses(value: Optional[str]) -> Optional[list[int]]:
    if not value:
        return None
    try:
        return [int(s) for s in value.split(",") if s.strip()]
    except ValueError:
        raise HTTPException(status_code=400, detail="Некоректний фільтр статусу")


@router.get("")
async def list_repairs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=1000),
    search: Optional[str] = None,
    status: Optional[str] = None,
    shouldCall: Optional[bool] = None,
    executor: Optional[str] = None,
    dateStart: Optional[str] = None,
    dateEnd: Optional[str] = None,
    paymentDateStart: Optional[str] = None,
    paymentDateEnd: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """Список квитанций, новые сверху. Фильтр по дате оплаты — только оплаченные."""
    rows, total = await repair_service.list_repairs(
        db,
        page=page,
        limit=limit,
        search=search,
        statuses=_parse_statuses(status),
        should_call=shouldCall,
        executor=executor,
        date_start=parse_date_param(dateStart),
        date_end=parse_date_param(dateEnd),
        payment_date_start=parse_date_param(paymentDateStart),
        payment_date_end=parse_date_param(paymentDateEnd),
    )
    return {
        "data": [repair_to_response(r) for r in rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": (total + limit - 1) // limit,
        },
    }


@router.get("/next-receipt-id")
async def next_receipt_id(db: AsyncSession = Depends(get_db)):
    return {"nextReceiptId": await repair_service.next_receipt_id(db)}


@router.get("/status-counts")
async def status_counts(db: AsyncSession = Depends(get_db)):
    counts = await repair_service.status_counts(db)
    return {str(k): v for k, v in counts.items()}


@router.get("/{repair_id}")
async def get_repair(repair_id: int, db: AsyncSession = Depends(get_db)):
    repair = await _get_repair_or_404(db, repair_id)
    parts = await warehouse.get_repair_parts(db, repair.id)
    return repair_to_response(repair, parts)


@router.post("", status_code=201)
async def create_repair(data: RepairCreate, db: AsyncSession = Depends(get_db)):
    try:
        repair = await repair_service.create_repair(db, data)
    except RepairError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return repair_to_response(repair, [])


@router.put("/{repair_id}")
async def update_repair(repair_id: int, data: RepairUpdate, db: AsyncSession = Depends(get_db)):
    """Слияние полей, согласование статуса и оплаты, пересчёт сумм по запчастям."""
    repair = await _get_repair_or_404(db, repair_id)
    try:
        repair = await repair_service.update_repair(db, repair, data)
    except RepairError as e:
        raise HTTPException(status_code=400, detail=str(e))
    parts = await warehouse.get_repair_parts(db, repair.id)
    return repair_to_response(repair, parts)


@router.delete("/{repair_id}")
async def delete_repair(repair_id: int, db: AsyncSession = Depends(get_db)):
    repair = await _get_repair_or_404(db, repair_id)
    await repair_service.delete_repair(db, repair)
    return {"ok": True, "id": repair_id}


@router.post("/{repair_id}/refund")
async def refund_repair(repair_id: int, body: RefundRequest, db: AsyncSession = Depends(get_db)):
    """Возврат денег клиенту, при необходимости — и запчастей на склад."""
    repair = await _get_repair_or_404(db, repair_id)
    try:
        txn = await ledger.refund_repair(
            db, repair, amount=body.refund_amount, refund_type=body.refund_type, note=body.note
        )
    except LedgerError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await warehouse.set_parts_payment(db, repair.id, False, None)
    if body.return_parts_to_warehouse:
        await warehouse.return_repair_parts(db, repair)
    parts = await warehouse.get_repair_parts(db, repair.id)
    return {
        "repair": repair_to_response(repair, parts),
        "transaction": transaction_to_response(txn) if txn else None,
    }


# --- Запчасти в квитанции ---

@router.get("/{repair_id}/parts")
async def list_repair_parts(repair_id: int, db: AsyncSession = Depends(get_db)):
    await _get_repair_or_404(db, repair_id)
    parts = await warehouse.get_repair_parts(db, repair_id)
    return [part_to_response(p) for p in parts]


@router.post("/{repair_id}/parts", status_code=201)
async def add_repair_part(repair_id: int, body: RepairPartAdd, db: AsyncSession = Depends(get_db)):
    repair = await _get_repair_or_404(db, repair_id)
    try:
        part = await warehouse.attach_part(
            db,
            repair,
            body.price_uah,
            part_id=body.part_id,
            name=body.name,
            supplier=body.supplier,
            cost_uah=body.cost_uah,
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PartError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"part": part_to_response(part), "repair": repair_to_response(repair)}


@router.post("/{repair_id}/parts/payment")
async def set_parts_payment(repair_id: int, body: PartsPaymentUpdate, db: AsyncSession = Depends(get_db)):
    """Дата продажи запчастей квитанции: дата оплаты или пусто."""
    repair = await _get_repair_or_404(db, repair_id)
    date_end = body.date_end or repair.date_end
    updated = await warehouse.set_parts_payment(db, repair.id, body.is_paid, date_end)
    return {"ok": True, "updated": updated}


@router.put("/{repair_id}/parts/{part_id}")
async def update_repair_part(
    repair_id: int, part_id: int, body: RepairPartUpdate, db: AsyncSession = Depends(get_db)
):
    repair = await _get_repair_or_404(db, repair_id)
    try:
        part = await warehouse.update_part_price(db, repair, part_id, body.price_uah)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PartError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"part": part_to_response(part), "repair": repair_to_response(repair)}


@router.delete("/{repair_id}/parts/{part_id}")
async def remove_repair_part(repair_id: int, part_id: int, db: AsyncSession = Depends(get_db)):
    repair = await _get_repair_or_404(db, repair_id)
    try:
        await warehouse.detach_part(db, repair, part_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PartError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"ok": True, "repair": repair_to_response(repair)}
