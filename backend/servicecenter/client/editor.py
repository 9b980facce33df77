"""Редактирование квитанции на клиенте: статус и оплата по тем же правилам, что и на сервере."""
from datetime import datetime
from typing import Optional

from servicecenter.client.resources import RepairsApi
from servicecenter.services.repair_lifecycle import (
    RepairDraft,
    StatusChange,
    apply_status_change,
    confirm_payment,
    normalize_for_save,
    set_paid,
)


class RepairEditor:
    """
    Черновик квитанции с запчастями. Суммы пересчитываются по кэшу запчастей
    перед каждым сохранением; запчасти меняются сразу на сервере.
    """

    def __init__(self, repairs: RepairsApi, draft: Optional[RepairDraft] = None):
        self.repairs = repairs
        self.draft = draft or RepairDraft(date_start=datetime.utcnow())
        # Оплата менялась: после сохранения обновить даты продажи запчастей
        self._payment_pending = False

    @classmethod
    async def open(cls, repairs: RepairsApi, repair_id: int) -> "RepairEditor":
        data = await repairs.get(repair_id)
        return cls(repairs, RepairDraft.from_api(data))

    @property
    def is_new(self) -> bool:
        return self.draft.id is None

    def change_status(self, status, now: Optional[datetime] = None) -> StatusChange:
        """«Видано» без оплаты вернёт requires_payment; дальше confirm_payment."""
        change = apply_status_change(self.draft, status, now)
        if change.payment_cleared:
            self._payment_pending = True
        return change

    def confirm_payment(self, payment_type: str, now: Optional[datetime] = None) -> None:
        confirm_payment(self.draft, payment_type, now)
        self._payment_pending = True

    def toggle_paid(self, paid: bool, use_today: bool = True, payment_type: Optional[str] = None) -> None:
        set_paid(self.draft, paid, use_today=use_today, payment_type=payment_type)
        self._payment_pending = True

    async def reload_parts(self) -> None:
        if self.draft.id is not None:
            self.draft.parts = await self.repairs.parts(self.draft.id)
        self.draft.recalculate()

    async def add_part(self, data: dict) -> dict:
        if self.is_new:
            await self.save()
        result = await self.repairs.add_part(self.draft.id, data)
        await self.reload_parts()
        return result["part"]

    async def remove_part(self, part_id: int) -> None:
        await self.repairs.remove_part(self.draft.id, part_id)
        await self.reload_parts()

    async def save(self) -> dict:
        self.draft.recalculate()
        normalize_for_save(self.draft)
        body = self.draft.to_api()
        if self.is_new:
            saved = await self.repairs.create(body)
        else:
            saved = await self.repairs.update(self.draft.id, body)
        parts = self.draft.parts
        self.draft = RepairDraft.from_api(saved)
        if not self.draft.parts:
            self.draft.parts = parts
        if self._payment_pending and self.draft.id is not None:
            await self.repairs.set_parts_payment(
                self.draft.id,
                self.draft.is_paid,
                self.draft.date_end.isoformat() if self.draft.date_end else None,
            )
            self._payment_pending = False
        return saved
