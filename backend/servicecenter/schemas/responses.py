"""Ответы API: модели в dict с ключами camelCase."""
from typing import Iterable, Optional

from servicecenter.core.dates import iso
from servicecenter.models import Counterparty, Executor, Part, Repair, STATUS_LABELS, RepairStatus, Transaction


def _money(value) -> float:
    return float(value or 0)


def part_to_response(p: Part) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "supplier": p.supplier,
        "priceUsd": _money(p.price_usd),
        "exchangeRate": _money(p.exchange_rate),
        "costUah": _money(p.cost_uah),
        "priceUah": _money(p.price_uah),
        "profit": _money(p.profit),
        "inStock": p.in_stock,
        "repairId": p.repair_id,
        "receiptId": p.repair_id,
        "dateArrival": iso(p.date_arrival),
        "dateSold": iso(p.date_sold),
        "invoice": p.invoice,
        "productCode": p.product_code,
        "barcode": p.barcode,
    }


def repair_to_response(r: Repair, parts: Optional[Iterable[Part]] = None) -> dict:
    out = {
        "id": r.id,
        "receiptId": r.receipt_id,
        "deviceName": r.device_name,
        "faultDesc": r.fault_desc,
        "workDone": r.work_done,
        "costLabor": _money(r.cost_labor),
        "totalCost": _money(r.total_cost),
        "isPaid": r.is_paid,
        "status": r.status,
        "statusLabel": STATUS_LABELS.get(RepairStatus(r.status), ""),
        "clientName": r.client_name,
        "clientPhone": r.client_phone,
        "profit": _money(r.profit),
        "dateStart": iso(r.date_start),
        "dateEnd": iso(r.date_end),
        "note": r.note,
        "shouldCall": r.should_call,
        "executor": r.executor,
        "paymentType": r.payment_type,
        "updatedAt": iso(r.updated_at),
    }
    if parts is not None:
        out["parts"] = [part_to_response(p) for p in parts]
    return out


def transaction_to_response(t: Transaction) -> dict:
    return {
        "id": t.id,
        "dateCreated": iso(t.date_created),
        "dateExecuted": iso(t.date_executed),
        "category": t.category,
        "amount": _money(t.amount),
        "cash": _money(t.cash),
        "card": _money(t.card),
        "description": t.description,
        "executorId": t.executor_id,
        "executorName": t.executor_name,
        "receiptId": t.repair_id,
        "paymentType": t.payment_type,
        "relatedTransactionId": t.related_transaction_id,
    }


def executor_to_response(e: Executor) -> dict:
    return {
        "id": e.id,
        "name": e.name,
        "salaryPercent": _money(e.salary_percent),
        "productsPercent": _money(e.products_percent),
        "color": e.color,
        "icon": e.icon,
        "hasPassword": bool(e.password_hash),
    }


def counterparty_to_response(c: Counterparty) -> dict:
    return {"id": c.id, "name": c.name, "smartImport": c.smart_import}
