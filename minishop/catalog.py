import logging
from decimal import Decimal
from typing import List, Optional, Union
from sqlalchemy import Text, func, insert, select

from .db import Store
from .errors import NotFound
from .models import Product
from .schemas import ProductOut
from .stock import available_column

logger = logging.getLogger(__name__)

Number = Union[int, float, Decimal]

STARTER_CATALOG = [
    ("p1", "Hạt Cà phê Arabica", 250000, 50),
    ("p2", "Trà Oolong Thượng Hạng", 180000, 30),
    ("p3", "Mật ong hoa nhãn", 320000, 20),
    ("p4", "Phô mai Camembert", 150000, 15),
    ("p5", "Xúc xích Salami Ý", 280000, 25),
    ("p6", "Bánh mì Sourdough", 80000, 40),
    ("p7", "Dầu Olive Extra Virgin", 190000, 30),
    ("p8", "Chocolate Đen 85%", 120000, 50),
    ("p9", "Rượu vang đỏ Chile", 450000, 12),
    ("p10", "Bột Matcha Nhật Bản", 300000, 18),
    ("p11", "Hạt Dinh Dưỡng Mix", 170000, 40),
    ("p12", "Nấm Truffle Đen", 950000, 5),
    ("p13", "Sốt Pesto Tươi", 95000, 22),
    ("p14", "Cá Hồi Xông Khói", 220000, 15),
    ("p15", "Mứt dâu tằm", 75000, 30),
]


class ProductRepository:
    def __init__(self, store: Store):
        self.store = store

    def seed_products(self) -> int:
        """
        Insert the starter catalog if the products table is empty.
        Returns the number of rows inserted (0 when already seeded).
        """
        with self.store.session() as s:
            count = s.execute(select(func.count()).select_from(Product)).scalar_one()
            if count:
                return 0
            s.execute(
                insert(Product),
                [
                    {"product_id": pid, "name": name, "price": price, "stock": stock}
                    for pid, name, price, stock in STARTER_CATALOG
                ],
            )
        logger.info("seeded %d products", len(STARTER_CATALOG))
        return len(STARTER_CATALOG)

    def get_products(
        self,
        keyword: Optional[str] = None,
        min_price: Optional[Number] = None,
        max_price: Optional[Number] = None,
    ) -> List[ProductOut]:
        """
        In-stock products, optionally filtered by a case-insensitive name
        substring and inclusive price bounds, ordered by name.
        """
        stmt = select(Product, available_column()).where(Product.stock > 0)
        if keyword:
            stmt = stmt.where(
                func.casefold(Product.name, type_=Text)
                .contains(keyword.casefold(), autoescape=True)
            )
        if min_price is not None:
            stmt = stmt.where(Product.price >= float(min_price))
        if max_price is not None:
            stmt = stmt.where(Product.price <= float(max_price))
        stmt = stmt.order_by(Product.name)

        with self.store.session() as s:
            rows = s.execute(stmt).all()
            return [_product_out(p, available) for p, available in rows]

    def get_product(self, product_id: str) -> ProductOut:
        stmt = select(Product, available_column()).where(Product.product_id == product_id)
        with self.store.session() as s:
            row = s.execute(stmt).first()
            if row is None:
                raise NotFound(f"product {product_id} does not exist")
            return _product_out(*row)


def _product_out(product: Product, available: int) -> ProductOut:
    return ProductOut(
        product_id=product.product_id,
        name=product.name,
        price=product.price,
        stock=product.stock,
        available=available,
    )
