"""Отчёты о доходах."""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from servicecenter.core.database import get_db
from servicecenter.core.dates import parse_date_param
from servicecenter.core.security import RequireApiToken
from servicecenter.schemas.responses import repair_to_response
from servicecenter.services import profits

router = APIRouter(prefix="/api/profits", tags=["profits"], dependencies=[RequireApiToken])


@router.get("/executors")
async def executor_profits(
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """Оплаченные ремонты за период по исполнителям."""
    return await profits.executor_profits(db, parse_date_param(startDate), parse_date_param(endDate))


@router.get("/receipts")
async def receipt_profits(
    executorName: Optional[str] = None,
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    return await profits.receipt_profits(
        db, executorName, parse_date_param(startDate), parse_date_param(endDate)
    )


@router.get("/products")
async def product_profits(
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    return await profits.product_profits(db, parse_date_param(startDate), parse_date_param(endDate))


@router.get("/unpaid-ready")
async def unpaid_ready(
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    rows = await profits.unpaid_ready(db, parse_date_param(startDate), parse_date_param(endDate))
    return [repair_to_response(r) for r in rows]
