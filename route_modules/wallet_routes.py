"""
Wallet Routes - balances, bundles and admin credit management
"""
from fastapi import APIRouter, Depends, HTTPException, Query

from auth import get_current_user
from models import BundlePurchaseRequest, CreditUpdateRequest, FreeStatusUpdate
from service_modules.wallet_service import get_wallet_service, WalletService, bundle_catalog

router = APIRouter()


@router.get("/api/wallet")
async def get_balance(
    user = Depends(get_current_user),
    service: WalletService = Depends(get_wallet_service)
):
    """Credits, tokens, loyalty card and essentials status."""
    return service.get_balance(user.id)


@router.get("/api/wallet/transactions")
async def my_transactions(
    limit: int = Query(default=50, ge=1, le=500),
    user = Depends(get_current_user),
    service: WalletService = Depends(get_wallet_service)
):
    return service.list_transactions(user.id, limit)


@router.get("/api/bundles")
async def list_bundles():
    return bundle_catalog()


@router.post("/api/bundles/purchase")
async def purchase_bundle(
    request: BundlePurchaseRequest,
    user = Depends(get_current_user),
    service: WalletService = Depends(get_wallet_service)
):
    client_id = user.id
    if request.user_id and request.user_id != user.id:
        if user.role != "admin":
            raise HTTPException(status_code=403, detail="Only admins can buy bundles for other clients")
        client_id = request.user_id
    return service.purchase_bundle(client_id, request.bundle_type, request.bundle_name, purchased_by=user.id)


# --- ADMIN ENDPOINTS ---

@router.put("/api/admin/users/{user_id}/credits")
async def update_credits(
    user_id: str,
    request: CreditUpdateRequest,
    user = Depends(get_current_user),
    service: WalletService = Depends(get_wallet_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can update credits")
    return service.update_user_credits(user_id, request.wallet, request.sale,
                                       request.token_updates, request.essentials_till)


@router.put("/api/admin/users/{user_id}/free")
async def set_free(
    user_id: str,
    request: FreeStatusUpdate,
    user = Depends(get_current_user),
    service: WalletService = Depends(get_wallet_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can change free status")
    return service.set_free(user_id, request.is_free)
