from marketplace import db, login_manager
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from datetime import datetime
from marketplace.business.core.data_insertion_mixin import DataInsertionMixin

USER_ROLES = ('customer', 'vendor', 'admin')


class User(UserMixin, DataInsertionMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='customer')
    vendor_id = db.Column(db.Integer, db.ForeignKey('vendors.id'), nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    vendor = db.relationship('Vendor', foreign_keys=[vendor_id])

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == 'admin'

    @property
    def is_vendor(self):
        return self.role == 'vendor' and self.vendor_id is not None

    def to_dict(self, include_audit_fields=True, exclude=None):
        exclude = set(exclude or []) | {'password_hash'}
        return super().to_dict(include_audit_fields=include_audit_fields, exclude=exclude)

    def __repr__(self):
        return f'<User {self.username} ({self.role})>'


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))
