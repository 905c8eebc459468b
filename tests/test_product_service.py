"""
Product lookups against the catalog table.
"""
from app.models.product import Product
from app.services.product_service import ProductService
from app.utils.result import ErrorType


def test_get_product(db):
    db.add(Product(id="p-1", sku="LAV-10", name="Lavender Oil", price=299.99, weight=0.125))
    db.commit()

    result = ProductService(db).get_product("p-1")

    assert result.success
    assert result.data.name == "Lavender Oil"
    assert float(result.data.weight) == 0.125


def test_missing_product(db):
    result = ProductService(db).get_product("nope")
    assert result.error_type == ErrorType.NOT_FOUND
