"""
Product lookup used by shipping (weights) and reminder e-mails (names)
"""
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.product import Product
from app.utils.logger import log
from app.utils.result import ErrorType, ServiceResult


class ProductService:
    """Read-only access to the product catalog"""

    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: str) -> ServiceResult:
        try:
            product = self.db.query(Product).filter(Product.id == str(product_id)).first()
        except SQLAlchemyError as e:
            log.error(f"Product lookup failed for {product_id}: {e}")
            return ServiceResult.fail(ErrorType.PERSISTENCE, str(e))

        if product is None:
            return ServiceResult.fail(ErrorType.NOT_FOUND, f"Product not found: {product_id}")
        return ServiceResult.ok(product)

