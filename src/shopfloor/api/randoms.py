"""Random number histogram, computed off the event loop.

Learn: Counting 10^8 random ints is pure CPU. Running it in a worker
process keeps the event loop (and every WebSocket) responsive while the
computation runs.
"""

import asyncio
import random
from collections import Counter
from concurrent.futures import ProcessPoolExecutor
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from shopfloor.config import settings

router = APIRouter(prefix="/api/randoms")

LOW = 1
HIGH = 1000


def count_randoms(quantity: int, low: int = LOW, high: int = HIGH) -> dict[int, int]:
    """How many times each number in [low, high] came up in `quantity` draws."""
    counts = Counter(random.randint(low, high) for _ in range(quantity))
    return dict(sorted(counts.items()))


@router.get("")
async def randoms(cant: Optional[int] = Query(None, ge=1)):
    if cant is not None and cant > settings.randoms_max_quantity:
        raise HTTPException(
            status_code=422,
            detail=f"cant must be at most {settings.randoms_max_quantity}",
        )
    quantity = cant or settings.randoms_default_quantity
    loop = asyncio.get_running_loop()
    with ProcessPoolExecutor(max_workers=1) as pool:
        counts = await loop.run_in_executor(pool, count_randoms, quantity)
    return {"quantity": quantity, "counts": counts}
