"""Касса: операции, сверка, остатки, настройки, категории приходов и расходов."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import String, select, or_, and_, func
from sqlalchemy.ext.asyncio import AsyncSession

from servicecenter.core.database import get_db
from servicecenter.core.dates import day_end, day_start, parse_date_param
from servicecenter.core.logging_config import get_logger
from servicecenter.core.security import RequireApiToken
from servicecenter.models import ExpenseCategory, IncomeCategory, Transaction, TransactionCategory
from servicecenter.schemas.cash import (
    ActivateRequest,
    CategoryCreate,
    CategoryUpdate,
    ManualTransactionCreate,
    ReconcileRequest,
    RegisterSettingsUpdate,
)
from servicecenter.schemas.responses import transaction_to_response
from servicecenter.services import ledger
from servicecenter.services.ledger import LedgerError

logger = get_logger(__name__)

transactions_router = APIRouter(prefix="/api/transactions", tags=["transactions"], dependencies=[RequireApiToken])
router = APIRouter(prefix="/api/cash-register", tags=["cash-register"], dependencies=[RequireApiToken])
expense_categories_router = APIRouter(
    prefix="/api/expense-categories", tags=["categories"], dependencies=[RequireApiToken]
)
income_categories_router = APIRouter(
    prefix="/api/income-categories", tags=["categories"], dependencies=[RequireApiToken]
)

# Нулевые суммы показываются только у этих категорий
_ZERO_VISIBLE = (TransactionCategory.ADJUSTMENT.value, TransactionCategory.WRITE_OFF.value)


@transactions_router.get("")
async def list_transactions(
    dateStart: Optional[str] = None,
    dateEnd: Optional[str] = None,
    category: Optional[str] = None,
    paymentType: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(500, ge=1, le=5000),
    db: AsyncSession = Depends(get_db),
):
    """Операции кассы по дате выполнения, новые сверху."""
    q = select(Transaction).where(
        or_(Transaction.amount != 0, Transaction.category.in_(_ZERO_VISIBLE))
    )
    start = parse_date_param(dateStart)
    end = parse_date_param(dateEnd)
    if start:
        q = q.where(Transaction.date_executed >= day_start(start))
    if end:
        q = q.where(Transaction.date_executed <= day_end(end))
    if category:
        q = q.where(Transaction.category == category)
    if paymentType:
        q = q.where(Transaction.payment_type == paymentType)
    if search and search.strip():
        q = q.where(func.lower(Transaction.description, type_=String).contains(search.strip().lower()))
    q = q.order_by(Transaction.date_executed.desc(), Transaction.id.desc()).limit(limit)
    r = await db.execute(q)
    return [transaction_to_response(t) for t in r.scalars().all()]


@transactions_router.post("", status_code=201)
async def create_transaction(data: ManualTransactionCreate, db: AsyncSession = Depends(get_db)):
    try:
        txn = await ledger.add_manual(
            db,
            kind=data.type,
            category=data.category,
            amount=data.amount,
            payment_type=data.payment_type,
            description=data.description,
            date_executed=data.date_executed,
        )
    except LedgerError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return transaction_to_response(txn)


@transactions_router.post("/reconcile", status_code=201)
async def reconcile(data: ReconcileRequest, db: AsyncSession = Depends(get_db)):
    """Сверка: остатки становятся равны пересчитанным суммам."""
    txn = await ledger.reconcile(db, data.actual_cash, data.actual_card, data.description)
    return transaction_to_response(txn)


@transactions_router.delete("/{transaction_id}")
async def delete_transaction(transaction_id: int, db: AsyncSession = Depends(get_db)):
    txn = await db.get(Transaction, transaction_id)
    if not txn:
        raise HTTPException(status_code=404, detail="Операцію не знайдено")
    await ledger.delete_transaction(db, txn)
    return {"ok": True, "id": transaction_id}


@router.get("/balances")
async def get_balances(db: AsyncSession = Depends(get_db)):
    cash, card = await ledger.get_balances(db)
    return {"cash": float(cash), "card": float(card), "total": float(cash + card)}


@router.get("/settings")
async def get_settings(db: AsyncSession = Depends(get_db)):
    register = await ledger.get_register_settings(db)
    return register.to_dict()


@router.put("/settings")
async def update_settings(data: RegisterSettingsUpdate, db: AsyncSession = Depends(get_db)):
    try:
        register = await ledger.update_commission(db, data.card_commission_percent)
    except LedgerError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return register.to_dict()


@router.post("/activate")
async def activate(data: ActivateRequest, db: AsyncSession = Depends(get_db)):
    """Включение кассы с начальными остатками. Повторно — 400."""
    try:
        register = await ledger.activate(db, data.initial_cash, data.initial_card)
    except LedgerError as e:
        raise HTTPException(status_code=400, detail=str(e))
    cash, card = await ledger.get_balances(db)
    return {**register.to_dict(), "cash": float(cash), "card": float(card)}


def _category_routes(category_router: APIRouter, model) -> None:
    """Одинаковый CRUD для категорий расходов и приходов."""

    def _to_response(c) -> dict:
        return {"id": c.id, "name": c.name, "active": c.active}

    @category_router.get("")
    async def list_categories(activeOnly: bool = False, db: AsyncSession = Depends(get_db)):
        q = select(model).order_by(model.name)
        if activeOnly:
            q = q.where(model.active == True)
        r = await db.execute(q)
        return [_to_response(c) for c in r.scalars().all()]

    @category_router.post("", status_code=201)
    async def create_category(data: CategoryCreate, db: AsyncSession = Depends(get_db)):
        name = data.name.strip()
        r = await db.execute(select(model.id).where(model.name == name))
        if r.scalar_one_or_none() is not None:
            raise HTTPException(status_code=400, detail="Категорія вже існує")
        c = model(name=name, active=True)
        db.add(c)
        await db.flush()
        return _to_response(c)

    @category_router.put("/{category_id}")
    async def update_category(category_id: int, data: CategoryUpdate, db: AsyncSession = Depends(get_db)):
        c = await db.get(model, category_id)
        if not c:
            raise HTTPException(status_code=404, detail="Категорію не знайдено")
        if data.name is not None:
            name = data.name.strip()
            r = await db.execute(select(model.id).where(and_(model.name == name, model.id != c.id)))
            if r.scalar_one_or_none() is not None:
                raise HTTPException(status_code=400, detail="Категорія вже існує")
            c.name = name
        if data.active is not None:
            c.active = data.active
        await db.flush()
        return _to_response(c)

    @category_router.delete("/{category_id}")
    async def delete_category(category_id: int, db: AsyncSession = Depends(get_db)):
        c = await db.get(model, category_id)
        if not c:
            raise HTTPException(status_code=404, detail="Категорію не знайдено")
        await db.delete(c)
        await db.flush()
        return {"ok": True, "id": category_id}


_category_routes(expense_categories_router, ExpenseCategory)
_category_routes(income_categories_router, IncomeCategory)
