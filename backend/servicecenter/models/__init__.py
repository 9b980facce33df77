from servicecenter.core.database import Base
from servicecenter.models.repair import Repair, RepairStatus, STATUS_LABELS, status_from_label
from servicecenter.models.part import Part, MANUAL_SUPPLIERS
from servicecenter.models.transaction import Transaction, TransactionCategory, PaymentType
from servicecenter.models.executor import Executor, Counterparty
from servicecenter.models.cash_register import AppSetting, ExpenseCategory, IncomeCategory, RepairLock

__all__ = [
    "AppSetting",
    "Base",
    "Counterparty",
    "ExpenseCategory",
    "Executor",
    "IncomeCategory",
    "MANUAL_SUPPLIERS",
    "Part",
    "PaymentType",
    "Repair",
    "RepairLock",
    "RepairStatus",
    "STATUS_LABELS",
    "Transaction",
    "TransactionCategory",
    "status_from_label",
]
