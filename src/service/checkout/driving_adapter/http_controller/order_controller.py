from typing import List

from fastapi import APIRouter, Depends, Query

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.query.list_orders_use_case import ListOrdersUseCase
from src.service.checkout.driving_adapter.http_controller.schema.order_schema import (
    OrderResponse,
)


router = APIRouter()


@router.get('', response_model=List[OrderResponse])
@Logger.io
async def list_orders(
    customer_email: str = Query(..., min_length=3),
    use_case: ListOrdersUseCase = Depends(ListOrdersUseCase.depends),
) -> List[OrderResponse]:
    """Order history of one customer, newest first."""
    orders = await use_case.list_orders(customer_email=customer_email)
    return [OrderResponse.from_entity(order) for order in orders]
