"""Склад: список позиций, приход, штрихкоды, списание, разбор накладных поставщиков."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import String, select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from servicecenter.core.database import get_db
from servicecenter.core.dates import day_end, day_start, iso, parse_date_param
from servicecenter.core.logging_config import get_logger
from servicecenter.core.security import RequireApiToken
from servicecenter.models import Part
from servicecenter.schemas.product import BarcodeUpdate, ImportRequest, ParseRequest, ProductCreate, ProductUpdate
from servicecenter.schemas.responses import part_to_response
from servicecenter.services import warehouse
from servicecenter.services.money import round_money
from servicecenter.services.smart_import import ParseError, parse_clipboard
from servicecenter.services.warehouse import PartError

router = APIRouter(prefix="/api/products", tags=["products"], dependencies=[RequireApiToken])
logger = get_logger(__name__)


async def _get_part_or_404(db: AsyncSession, part_id: int) -> Part:
    part = await db.get(Part, part_id)
    if part is None:
        raise HTTPException(status_code=404, detail="Товар не знайдено")
    return part


def _product_filters(q, stockFilter, supplier, search, dateArrivalStart, dateArrivalEnd):
    if stockFilter == "inStock":
        q = q.where(Part.in_stock == True)
    elif stockFilter == "sold":
        q = q.where(Part.in_stock == False)
    if supplier:
        q = q.where(Part.supplier == supplier)
    if search and search.strip():
        text = search.strip().lower()
        q = q.where(or_(
            func.lower(Part.name, type_=String).contains(text),
            func.lower(Part.supplier, type_=String).contains(text),
            func.lower(func.coalesce(Part.product_code, ""), type_=String).contains(text),
        ))
    start = parse_date_param(dateArrivalStart)
    end = parse_date_param(dateArrivalEnd)
    if start:
        q = q.where(Part.date_arrival >= day_start(start))
    if end:
        q = q.where(Part.date_arrival <= day_end(end))
    return q


@router.get("")
async def list_products(
    stockFilter: str = Query("inStock", pattern="^(inStock|sold|all)$"),
    supplier: Optional[str] = None,
    search: Optional[str] = None,
    dateArrivalStart: Optional[str] = None,
    dateArrivalEnd: Optional[str] = None,
    grouped: bool = False,
    db: AsyncSession = Depends(get_db),
):
    """Позиции склада, новые сверху. grouped=true — по (название, поставщик) с количеством."""
    if grouped:
        q = select(
            Part.name,
            Part.supplier,
            func.count(Part.id).label("quantity"),
            func.sum(Part.cost_uah).label("total_cost"),
            func.max(Part.cost_uah).label("cost_uah"),
            func.max(Part.date_arrival).label("date_arrival"),
            func.max(Part.id).label("last_id"),
        )
        q = _product_filters(q, stockFilter, supplier, search, dateArrivalStart, dateArrivalEnd)
        q = q.group_by(Part.name, Part.supplier).order_by(func.max(Part.date_arrival).desc())
        rows = (await db.execute(q)).all()
        return [
            {
                "id": r.last_id,
                "name": r.name,
                "supplier": r.supplier,
                "quantity": r.quantity,
                "costUah": float(r.cost_uah or 0),
                "totalCost": float(round_money(r.total_cost)),
                "dateArrival": iso(r.date_arrival),
            }
            for r in rows
        ]
    q = _product_filters(select(Part), stockFilter, supplier, search, dateArrivalStart, dateArrivalEnd)
    q = q.order_by(Part.date_arrival.desc(), Part.id.desc())
    r = await db.execute(q)
    return [part_to_response(p) for p in r.scalars().all()]


@router.get("/suppliers")
async def list_suppliers(db: AsyncSession = Depends(get_db)):
    r = await db.execute(select(Part.supplier).where(Part.supplier != "").distinct().order_by(Part.supplier))
    return list(r.scalars().all())


@router.get("/barcode/{code}")
async def find_by_barcode(code: str, db: AsyncSession = Depends(get_db)):
    """Последняя пришедшая позиция в наличии с этим штрихкодом."""
    r = await db.execute(
        select(Part)
        .where(Part.barcode == code, Part.in_stock == True)
        .order_by(Part.date_arrival.desc(), Part.id.desc())
        .limit(1)
    )
    part = r.scalar_one_or_none()
    if part is None:
        raise HTTPException(status_code=404, detail="Товар зі штрихкодом не знайдено")
    return part_to_response(part)


@router.post("", status_code=201)
async def create_products(data: ProductCreate, db: AsyncSession = Depends(get_db)):
    try:
        items = await warehouse.add_stock_items(
            db,
            name=data.name,
            supplier=data.supplier,
            quantity=data.quantity,
            price_usd=data.price_usd,
            exchange_rate=data.exchange_rate,
            cost_uah=data.cost_uah,
            invoice=data.invoice,
            product_code=data.product_code,
            barcode=data.barcode,
            date_arrival=data.date_arrival,
            payment_type=data.payment_type,
        )
    except PartError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"count": len(items), "items": [part_to_response(p) for p in items]}


@router.post("/parse")
async def parse_invoice(body: ParseRequest):
    """Разбор текста накладной (DFI или ARC) без записи в базу."""
    try:
        fmt, items = parse_clipboard(body.text)
    except ParseError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"format": fmt.value, "items": [i.to_dict() for i in items]}


@router.post("/import", status_code=201)
async def import_items(body: ImportRequest, db: AsyncSession = Depends(get_db)):
    """Приход разобранных позиций: себестоимость = цена в $ × курс."""
    if not body.items:
        raise HTTPException(status_code=400, detail="Немає позицій для імпорту")
    created = 0
    try:
        for item in body.items:
            parts = await warehouse.add_stock_items(
                db,
                name=item.name,
                supplier=body.supplier,
                quantity=item.quantity,
                price_usd=item.price_usd,
                exchange_rate=body.exchange_rate,
                invoice=body.invoice,
                product_code=item.product_code or None,
                payment_type=body.payment_type,
            )
            created += len(parts)
    except PartError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info("Импорт накладной %s: %s позиций", body.supplier, created)
    return {"ok": True, "created": created}


@router.put("/{part_id}")
async def update_product(part_id: int, data: ProductUpdate, db: AsyncSession = Depends(get_db)):
    part = await _get_part_or_404(db, part_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(part, field, value)
    if "cost_uah" not in changes and ("price_usd" in changes or "exchange_rate" in changes):
        part.cost_uah = round_money(part.price_usd * part.exchange_rate)
    if not part.in_stock and part.price_uah:
        part.profit = round_money(part.price_uah - part.cost_uah)
    await db.flush()
    return part_to_response(part)


@router.put("/{part_id}/barcode")
async def set_barcode(part_id: int, body: BarcodeUpdate, db: AsyncSession = Depends(get_db)):
    part = await _get_part_or_404(db, part_id)
    code = body.barcode.strip()
    if not code:
        raise HTTPException(status_code=400, detail="Порожній штрихкод")
    part.barcode = code
    await db.flush()
    return part_to_response(part)


@router.delete("/{part_id}/barcode")
async def clear_barcode(part_id: int, db: AsyncSession = Depends(get_db)):
    part = await _get_part_or_404(db, part_id)
    part.barcode = None
    await db.flush()
    return part_to_response(part)


@router.delete("/{part_id}")
async def delete_product(part_id: int, writeOff: bool = False, db: AsyncSession = Depends(get_db)):
    part = await _get_part_or_404(db, part_id)
    try:
        await warehouse.delete_stock_item(db, part, write_off=writeOff)
    except PartError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"ok": True, "id": part_id}
