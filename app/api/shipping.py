"""
Shipping API

Multi-carrier shipping quotes for the checkout, plus carrier and postal-code
lookups for the cart UI.
"""
from fastapi import APIRouter, Depends, Query, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session
from typing import List, Optional

from app.models.base import get_db
from app.services.carrier_catalog import CarrierCatalog
from app.services.product_service import ProductService
from app.services.shipping_rate_engine import ShippingRateEngine
from app.services.swedish_zones import validate_postal_code
from app.utils.logger import log
from app.utils.result import http_status_for

router = APIRouter(prefix="/api/shipping", tags=["shipping"])

catalog = CarrierCatalog()


class ShippingItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="productId")
    quantity: int


class ShippingCalculationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[ShippingItem]
    country: str = "SE"
    postal_code: Optional[str] = Field(None, alias="postalCode")
    order_value: float = Field(0, alias="orderValue")


def _quote(request: ShippingCalculationRequest, db: Session, eco_only: bool) -> dict:
    engine = ShippingRateEngine(ProductService(db), catalog=catalog)
    items = [{"product_id": i.product_id, "quantity": i.quantity} for i in request.items]
    calculate = engine.calculate_eco_only if eco_only else engine.calculate

    result = calculate(items, request.country, request.postal_code, request.order_value)
    if not result.success:
        raise HTTPException(status_code=http_status_for(result), detail=result.error)

    return {
        "success": True,
        "data": result.data.to_dict()
    }


@router.post("/calculate")
async def calculate_shipping(
    request: ShippingCalculationRequest,
    db: Session = Depends(get_db)
):
    """
    Shipping options for a cart

    Returns every eligible carrier service sorted by price, the recommended
    option, and a no_carrier_available flag when the parcel is too heavy.
    """
    try:
        return _quote(request, db, eco_only=False)

    except HTTPException:
        raise
    except Exception as e:
        log.error(f"Error calculating shipping: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to calculate shipping")


@router.post("/calculate/eco")
async def calculate_eco_shipping(
    request: ShippingCalculationRequest,
    db: Session = Depends(get_db)
):
    """Eco-friendly options only, with a carbon offset estimate"""
    try:
        return _quote(request, db, eco_only=True)

    except HTTPException:
        raise
    except Exception as e:
        log.error(f"Error calculating eco shipping: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to calculate shipping")


@router.get("/carriers")
async def list_carriers(
    weight: Optional[float] = Query(None, ge=0, description="Only carriers that can take this weight (kg)"),
    eco: bool = Query(False, description="Only carriers with eco-friendly services")
):
    carriers = catalog.eco_friendly_carriers() if eco else catalog.list_carriers()
    if weight is not None:
        carriers = [c for c in carriers if c.services_for_weight(weight)]

    return {
        "success": True,
        "data": [c.to_dict() for c in carriers]
    }


@router.get("/carriers/{code}")
async def get_carrier(code: str):
    result = catalog.get_carrier(code)
    if not result.success:
        raise HTTPException(status_code=http_status_for(result), detail=result.error)

    return {
        "success": True,
        "data": result.data.to_dict()
    }


@router.get("/postal-codes/{postal_code}")
async def lookup_postal_code(postal_code: str):
    """Validate a Swedish postal code and return its delivery zone"""
    result = validate_postal_code(postal_code)
    if not result.success:
        raise HTTPException(status_code=http_status_for(result), detail=result.error)

    return {
        "success": True,
        "data": {
            "postal_code": postal_code,
            **result.data.to_dict()
        }
    }
