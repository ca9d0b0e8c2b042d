"""FIFO 原価計算

損耗盤点などで消費した数量の原価を、古い仕入れロットから順に
消費する先入先出法で計算する。
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from restops.domain.models import FifoBatchUsage, FifoResult, PriceBatch

logger = logging.getLogger(__name__)


def calculate_fifo_cost(batches: Iterable[PriceBatch], quantity: float) -> FifoResult:
    """
    FIFO で原価を計算する。

    Args:
        batches: 仕入れロット（順不同。created_at の古い順に消費する）
        quantity: 消費数量

    Returns:
        FifoResult: 平均単価と合計原価（小数第2位で丸め）、在庫不足分

    Raises:
        ValueError: quantity が負の場合
    """
    if quantity < 0:
        raise ValueError(f"quantity must not be negative: {quantity}")

    ordered = sorted(
        (b for b in batches if b.remaining_quantity > 0), key=lambda b: b.created_at
    )
    if not ordered:
        logger.warning("No purchase batches available for FIFO calculation")
        return FifoResult(unit_price=0.0, total_price=0.0, shortfall=float(quantity))

    remaining = float(quantity)
    total_cost = 0.0
    used: list[FifoBatchUsage] = []

    for batch in ordered:
        if remaining <= 0:
            break
        take = min(remaining, batch.remaining_quantity)
        total_cost += take * batch.unit_price
        remaining -= take
        used.append(FifoBatchUsage(quantity=take, unit_price=batch.unit_price))
        logger.debug("Using batch %s: %s @ %.2f", batch.id, take, batch.unit_price)

    covered = quantity - remaining
    unit_price = total_cost / covered if covered > 0 else 0.0

    if remaining > 0:
        logger.warning("Insufficient inventory: short by %s units", remaining)

    return FifoResult(
        unit_price=round(unit_price, 2),
        total_price=round(total_cost, 2),
        batches=tuple(used),
        shortfall=max(remaining, 0.0),
    )
