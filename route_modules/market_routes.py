"""
Market Routes - shop catalog, purchases and front-desk order claims
"""
from fastapi import APIRouter, Depends, HTTPException

from auth import get_current_user
from models import MarketItemCreate, MarketItemUpdate, QuantityUpdate, PurchaseRequest
from service_modules.market_service import get_market_service, MarketService

router = APIRouter()


# --- CLIENT ENDPOINTS ---

@router.get("/api/market")
async def list_market(
    category: str = "available",
    user = Depends(get_current_user),
    service: MarketService = Depends(get_market_service)
):
    """category: available, items, clothes or all"""
    if category not in ("available", "items", "clothes", "all"):
        raise HTTPException(status_code=400, detail="category must be available, items, clothes or all")
    return service.list_items(category)


@router.post("/api/market/purchase")
async def purchase(
    request: PurchaseRequest,
    user = Depends(get_current_user),
    service: MarketService = Depends(get_market_service)
):
    if any(line.quantity < 0 for line in request.cart):
        raise HTTPException(status_code=400, detail="Quantities cannot be negative")
    return service.purchase(user.id, [line.model_dump() for line in request.cart])


@router.get("/api/market/orders")
async def my_orders(
    user = Depends(get_current_user),
    service: MarketService = Depends(get_market_service)
):
    return service.list_user_orders(user.id)


# --- ADMIN ENDPOINTS ---

@router.post("/api/admin/market")
async def create_item(
    request: MarketItemCreate,
    user = Depends(get_current_user),
    service: MarketService = Depends(get_market_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can manage the market")
    return service.create_item(request.model_dump())


@router.put("/api/admin/market/{item_id}")
async def update_item(
    item_id: str,
    request: MarketItemUpdate,
    user = Depends(get_current_user),
    service: MarketService = Depends(get_market_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can manage the market")
    return service.update_item(item_id, request.model_dump(exclude_unset=True))


@router.put("/api/admin/market/{item_id}/quantity")
async def update_quantity(
    item_id: str,
    request: QuantityUpdate,
    user = Depends(get_current_user),
    service: MarketService = Depends(get_market_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can manage the market")
    return service.update_item(item_id, {"quantity": request.quantity})


@router.delete("/api/admin/market/{item_id}")
async def delete_item(
    item_id: str,
    user = Depends(get_current_user),
    service: MarketService = Depends(get_market_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can manage the market")
    return service.delete_item(item_id)


@router.get("/api/admin/market/orders")
async def unclaimed_orders(
    user = Depends(get_current_user),
    service: MarketService = Depends(get_market_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can view shop orders")
    return service.list_unclaimed_orders()


@router.post("/api/admin/market/orders/{order_id}/claim")
async def claim_order(
    order_id: str,
    user = Depends(get_current_user),
    service: MarketService = Depends(get_market_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can claim shop orders")
    return service.claim_order(order_id)
