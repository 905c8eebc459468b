"""
Cart Recovery API

Endpoints behind the abandoned-cart e-mails: tracking idle carts and
resolving recovery links back into cart contents.
"""
from fastapi import APIRouter, Depends, Query, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session
from typing import List, Optional

from app.models.base import get_db
from app.services.abandoned_cart_store import AbandonedCartStore
from app.services.cart_abandonment_service import CartAbandonmentService
from app.services.cart_recovery_resolver import CartRecoveryResolver
from app.utils.helpers import mask_token
from app.utils.logger import log
from app.utils.result import http_status_for

router = APIRouter(prefix="/api/cart", tags=["cart-recovery"])


class RecoverCartRequest(BaseModel):
    token: Optional[str] = None


class AbandonedCartItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="productId")
    quantity: int = Field(..., gt=0)
    price: float = Field(..., ge=0)


class TrackAbandonedCartRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cart_id: str = Field(..., alias="cartId")
    email: Optional[str] = None
    items: List[AbandonedCartItem] = []
    customer_id: Optional[str] = Field(None, alias="customerId")
    session_id: Optional[str] = Field(None, alias="sessionId")
    total: Optional[float] = None


def _recover(token: Optional[str], db: Session) -> dict:
    if not token:
        raise HTTPException(status_code=400, detail="Recovery token is required")

    log.info(f"Attempting to recover cart with token: {mask_token(token)}")

    result = CartRecoveryResolver(AbandonedCartStore(db)).recover(token)
    if not result.success:
        log.warning(f"Failed to recover cart: {result.error}")
        raise HTTPException(status_code=http_status_for(result), detail=result.error)

    cart = result.data
    log.info(f"Recovered cart {cart['cart_id']} with {len(cart['items'])} items")

    return {
        "success": True,
        "data": {
            "cartId": cart["cart_id"],
            "items": cart["items"],
            "total": cart["total"],
            "email": cart["email"],
            "message": "Cart recovered successfully"
        }
    }


@router.get("/recover")
async def recover_cart(
    token: Optional[str] = Query(None, description="Recovery token from the reminder e-mail"),
    db: Session = Depends(get_db)
):
    """
    Resolve a recovery link

    The storefront restores the returned items into the visitor's cart and
    sends them on to checkout. The token stays valid until an order is placed.
    """
    try:
        return _recover(token, db)

    except HTTPException:
        raise
    except Exception as e:
        log.error(f"Unexpected error recovering cart: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to recover cart")


@router.post("/recover")
async def recover_cart_post(
    request: RecoverCartRequest,
    db: Session = Depends(get_db)
):
    """Same as GET, with the token in the body"""
    try:
        return _recover(request.token, db)

    except HTTPException:
        raise
    except Exception as e:
        log.error(f"Unexpected error recovering cart: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to recover cart")


@router.post("/abandoned")
async def track_abandoned_cart(
    body: TrackAbandonedCartRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    """Record an idle cart for reminder e-mails"""
    try:
        service = CartAbandonmentService(AbandonedCartStore(db))
        result = service.track(
            cart_id=body.cart_id,
            email=body.email,
            items=[item.model_dump() for item in body.items],
            customer_id=body.customer_id,
            session_id=body.session_id,
            total=body.total,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )
        if not result.success:
            raise HTTPException(status_code=http_status_for(result), detail=result.error)

        return {
            "success": True,
            "data": {
                "abandonedCartId": result.data["abandoned_cart_id"],
                "recoveryToken": result.data["recovery_token"]
            }
        }

    except HTTPException:
        raise
    except Exception as e:
        log.error(f"Error tracking abandoned cart: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to track abandoned cart")
