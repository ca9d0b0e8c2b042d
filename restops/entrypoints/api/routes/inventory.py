"""在庫原価 API ルート

GET /api/inventory/fifo?item_name=&quantity=  → 200 { unit_price, total_price, ... }
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from restops.adapters.firestore_repository import FirestoreInventoryRepository
from restops.entrypoints.api.deps import (
    StaffContext,
    get_inventory_repo,
    get_staff_context,
)
from restops.services.fifo import calculate_fifo_cost

router = APIRouter(prefix="/inventory", tags=["inventory"])


class BatchUsageResponse(BaseModel):
    quantity: float
    unit_price: float


class FifoResponse(BaseModel):
    item_name: str
    quantity: float
    unit_price: float
    total_price: float
    shortfall: float
    batches: list[BatchUsageResponse]


@router.get("/fifo", response_model=FifoResponse)
async def fifo_cost(
    item_name: str,
    quantity: float = Query(..., ge=0),
    ctx: StaffContext = Depends(get_staff_context),
    repo: FirestoreInventoryRepository = Depends(get_inventory_repo),
) -> FifoResponse:
    """消費数量の原価を先入先出法で計算する"""
    result = calculate_fifo_cost(
        repo.list_purchase_batches(ctx.restaurant_id, item_name), quantity
    )
    return FifoResponse(
        item_name=item_name,
        quantity=quantity,
        unit_price=result.unit_price,
        total_price=result.total_price,
        shortfall=result.shortfall,
        batches=[
            BatchUsageResponse(quantity=b.quantity, unit_price=b.unit_price)
            for b in result.batches
        ],
    )
