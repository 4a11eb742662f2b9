from marketplace import db
from marketplace.data.core.user_created_base import UserCreatedBase
from marketplace.data.catalog.seo_fields import SeoFieldsMixin


class Category(SeoFieldsMixin, UserCreatedBase):
    __tablename__ = 'categories'

    seo_source_field = 'name'

    name = db.Column(db.String(100), nullable=False, index=True)
    description = db.Column(db.Text)
    parent_id = db.Column(db.Integer, db.ForeignKey('categories.id'), nullable=True, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_by_type = db.Column(db.String(10), default='admin', nullable=False)

    parent = db.relationship('Category', remote_side='Category.id', backref='children')

    def to_summary(self):
        return {'id': self.id, 'name': self.name, 'slug': self.slug}

    def to_dict(self, include_audit_fields=True, exclude=None):
        data = super().to_dict(include_audit_fields=include_audit_fields, exclude=exclude)
        data['parent'] = self.parent.to_summary() if self.parent else None
        return data

    def __repr__(self):
        return f'<Category {self.name}>'
