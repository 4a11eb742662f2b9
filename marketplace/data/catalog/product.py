from marketplace import db
from marketplace.data.core.user_created_base import UserCreatedBase
from marketplace.data.catalog.seo_fields import SeoFieldsMixin
from marketplace.business.seo.seo_utils import generate_alt_text


def _category_link_table(name):
    return db.Table(
        name,
        db.Column('product_id', db.Integer, db.ForeignKey('products.id', ondelete='CASCADE'), primary_key=True),
        db.Column('category_id', db.Integer, db.ForeignKey('categories.id', ondelete='CASCADE'), primary_key=True),
    )


# A product may be filed under several categories at three levels; filters match any of them
product_categories = _category_link_table('product_categories')
product_main_categories = _category_link_table('product_main_categories')
product_sub_categories = _category_link_table('product_sub_categories')

PRODUCT_LOW_STOCK_LEVEL = 10


class Product(SeoFieldsMixin, UserCreatedBase):
    __tablename__ = 'products'
    __table_args__ = (
        db.CheckConstraint('price >= 0', name='ck_product_price_non_negative'),
        db.CheckConstraint('stock >= 0', name='ck_product_stock_non_negative'),
        db.CheckConstraint('discount >= 0 AND discount <= 100', name='ck_product_discount_range'),
        db.Index('ix_products_active_visible', 'is_active', 'is_visible'),
    )

    seo_source_field = 'title'

    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.String(2000))
    price = db.Column(db.Float, nullable=False)
    original_price = db.Column(db.Float)
    discount = db.Column(db.Float, default=0, nullable=False)
    image = db.Column(db.String(500))
    images = db.Column(db.JSON, default=list)
    brand = db.Column(db.String(100))
    tags = db.Column(db.JSON, default=list)
    keywords = db.Column(db.JSON, default=list)
    alt_text = db.Column(db.String(125))
    stock = db.Column(db.Integer, default=0, nullable=False)
    sku = db.Column(db.String(100), unique=True)
    vendor_sku = db.Column(db.String(100))
    weight = db.Column(db.Float)
    shipping = db.Column(db.Float, default=0, nullable=False)
    dimensions = db.Column(db.JSON)
    vendor_id = db.Column(db.Integer, db.ForeignKey('vendors.id'), nullable=True, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    is_visible = db.Column(db.Boolean, default=True, nullable=False)
    is_featured = db.Column(db.Boolean, default=False, nullable=False)
    views = db.Column(db.Integer, default=0, nullable=False)
    sales_count = db.Column(db.Integer, default=0, nullable=False)
    low_stock_threshold = db.Column(db.Integer, default=10, nullable=False)

    vendor = db.relationship('Vendor', back_populates='products')
    categories = db.relationship('Category', secondary=product_categories, lazy='selectin')
    main_categories = db.relationship('Category', secondary=product_main_categories, lazy='selectin')
    sub_categories = db.relationship('Category', secondary=product_sub_categories, lazy='selectin')
    inventory_records = db.relationship('Inventory', back_populates='product')

    def apply_seo_defaults(self, session, reserved):
        super().apply_seo_defaults(session, reserved)
        if not self.alt_text and self.title:
            self.alt_text = generate_alt_text(self.title)

    @property
    def product_source(self):
        return 'vendor' if self.vendor_id else 'admin'

    @property
    def source_display_name(self):
        if self.vendor is not None:
            return self.vendor.business_name
        return 'Marketplace'

    @property
    def stock_status(self):
        if not self.stock:
            return 'out-of-stock'
        if self.stock <= PRODUCT_LOW_STOCK_LEVEL:
            return 'low-stock'
        return 'in-stock'

    @property
    def discounted_price(self):
        if self.discount and self.discount > 0:
            return self.price * (1 - self.discount / 100)
        return self.price

    @property
    def category_path(self):
        if self.categories:
            return ' > '.join(category.name for category in self.categories)
        return 'Uncategorized'

    @property
    def primary_category_name(self):
        for collection in (self.main_categories, self.categories, self.sub_categories):
            if collection:
                return collection[0].name
        return 'Uncategorized'

    @property
    def inventory(self):
        """Inventory row of the owning vendor, if this product is tracked."""
        for record in self.inventory_records:
            if record.vendor_id == self.vendor_id:
                return record
        return None

    def to_dict(self, include_audit_fields=True, exclude=None):
        data = super().to_dict(include_audit_fields=include_audit_fields, exclude=exclude)
        data.update({
            'product_source': self.product_source,
            'source_display_name': self.source_display_name,
            'stock_status': self.stock_status,
            'discounted_price': round(self.discounted_price, 2),
            'category_path': self.category_path,
            'categories': [c.to_summary() for c in self.categories],
            'main_categories': [c.to_summary() for c in self.main_categories],
            'sub_categories': [c.to_summary() for c in self.sub_categories],
            'vendor': {'id': self.vendor.id, 'business_name': self.vendor.business_name} if self.vendor else None,
        })
        return data

    def __repr__(self):
        return f'<Product {self.title}>'
