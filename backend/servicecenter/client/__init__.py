from servicecenter.client.api import ApiClient, ApiError
from servicecenter.client.resources import (
    BackupsApi,
    CashRegisterApi,
    DirectoryApi,
    RepairsApi,
    ServiceCenterClient,
    WarehouseApi,
)
from servicecenter.client.editor import RepairEditor

__all__ = [
    "ApiClient",
    "ApiError",
    "BackupsApi",
    "CashRegisterApi",
    "DirectoryApi",
    "RepairEditor",
    "RepairsApi",
    "ServiceCenterClient",
    "WarehouseApi",
]
