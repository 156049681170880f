"""Product repository for database operations"""

from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.product import Product, ProductCategory
from ..schemas.product import ProductCreate, ProductUpdate

SORTABLE_FIELDS = {
    "name": Product.name,
    "price": Product.price,
    "quantity": Product.quantity,
    "created_at": Product.created_at,
}


class ProductRepository:
    """Repository for product database operations"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_product(self, product_data: ProductCreate) -> Product:
        """Create a new product"""
        product = Product(
            seller_id=product_data.seller_id,
            name=product_data.name,
            description=product_data.description,
            price=product_data.price,
            quantity=product_data.quantity,
            category=product_data.category,
        )

        self.db.add(product)
        await self.db.commit()
        await self.db.refresh(product)
        return product

    async def get_product_by_id(self, product_id: str) -> Optional[Product]:
        """Get product by ID"""
        query = select(Product).where(Product.id == product_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_products(
        self,
        page: int = 1,
        limit: int = 20,
        seller_id: Optional[str] = None,
        category: Optional[ProductCategory] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Tuple[List[Product], int]:
        """List products with filtering, sorting and pagination"""
        query = select(Product)
        count_query = select(func.count()).select_from(Product)

        if seller_id:
            query = query.where(Product.seller_id == seller_id)
            count_query = count_query.where(Product.seller_id == seller_id)
        if category:
            query = query.where(Product.category == category)
            count_query = count_query.where(Product.category == category)

        sort_column = SORTABLE_FIELDS.get(sort_by, Product.created_at)
        query = query.order_by(
            sort_column.asc() if sort_order == "asc" else sort_column.desc()
        )
        query = query.offset((page - 1) * limit).limit(limit)

        products = (await self.db.execute(query)).scalars().all()
        total = (await self.db.execute(count_query)).scalar_one()
        return list(products), total

    async def update_product(
        self, product: Product, product_data: ProductUpdate
    ) -> Product:
        """Apply the fields set on the update request and persist them"""
        update_data = product_data.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in update_data.items():
            setattr(product, field, value)

        await self.db.commit()
        await self.db.refresh(product)
        return product

    async def delete_product(self, product: Product) -> None:
        """Delete product"""
        await self.db.delete(product)
        await self.db.commit()
