from sqlalchemy import event
from sqlalchemy.orm import Session, declared_attr
from marketplace import db
from marketplace.business.seo.seo_utils import (
    generate_unique_slug,
    generate_meta_title,
    generate_meta_description,
)


class SeoFieldsMixin:
    """
    Slug and meta columns shared by products and categories.

    Missing values are filled in at flush time from ``seo_source_field``
    (title or name) and ``description``.
    """

    seo_source_field = 'name'

    @declared_attr
    def slug(cls):
        return db.Column(db.String(100), unique=True, index=True)

    meta_title = db.Column(db.String(60))
    meta_description = db.Column(db.String(160))
    seo_keywords = db.Column(db.JSON, default=list)
    canonical_url = db.Column(db.String(500))

    def apply_seo_defaults(self, session, reserved):
        source = getattr(self, self.seo_source_field)
        if not self.slug and source:
            self.slug = generate_unique_slug(source, type(self), exclude_id=self.id,
                                             session=session, reserved=reserved)
        if self.slug:
            reserved.add(self.slug)
        if not self.meta_title and source:
            self.meta_title = generate_meta_title(source)
        if not self.meta_description and self.description:
            self.meta_description = generate_meta_description(self.description)


@event.listens_for(Session, 'before_flush')
def fill_seo_defaults(session, flush_context, instances):
    reserved = {}
    with session.no_autoflush:
        for obj in list(session.new) + list(session.dirty):
            if isinstance(obj, SeoFieldsMixin):
                obj.apply_seo_defaults(session, reserved.setdefault(type(obj), set()))
