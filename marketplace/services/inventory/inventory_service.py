"""
Inventory Service
Read-only inventory queries for the vendor inventory screens.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from flask_sqlalchemy.pagination import Pagination
from sqlalchemy.orm import joinedload

from marketplace import db
from marketplace.data.catalog.product import Product
from marketplace.data.inventory.inventory import Inventory
from marketplace.data.inventory.inventory_alert import InventoryAlert
from marketplace.data.inventory.stock_movement import StockMovement
from marketplace.services.catalog.product_service import LIKE_ESCAPE, contains_pattern

SORT_FIELDS = {
    'last_stock_update': Inventory.last_stock_update,
    'current_stock': Inventory.current_stock,
    'available_stock': Inventory.available_stock,
    'stock_status': Inventory.stock_status,
    'created_at': Inventory.created_at,
}
DEFAULT_SORT_FIELD = 'last_stock_update'
RECENT_ITEMS_LIMIT = 10
OVERVIEW_ALERT_LIMIT = 20
TOP_VALUE_LIMIT = 10


def _unit_cost():
    return db.func.coalesce(Inventory.average_cost_price, Inventory.cost_price, 0)


def _alert_dict(alert: InventoryAlert) -> Dict[str, Any]:
    data = alert.to_dict()
    product = alert.inventory.product
    data.update({
        'inventory_id': alert.inventory_id,
        'product_name': product.title if product else None,
        'product_sku': product.sku if product else None,
        'product_image': (product.images or [product.image])[0] if product else None,
    })
    return data


class InventoryService:
    """
    Service for vendor inventory presentation data.

    Provides methods for:
    - Filtered, sorted and paginated inventory lists
    - The inventory overview (summary, recent changes, low stock, reorder, alerts)
    - Alert and stock movement listings
    - Movement and valuation analytics over a period
    """

    @staticmethod
    def get_list_data(
        vendor_id: int,
        page: int = 1,
        per_page: int = 20,
        search: Optional[str] = None,
        status: Optional[str] = None,
        sort_by: str = DEFAULT_SORT_FIELD,
        sort_order: str = 'desc',
        low_stock: bool = False,
        out_of_stock: bool = False,
    ) -> Tuple[Pagination, Dict[str, Any]]:
        """
        Get paginated inventory rows for one vendor.

        Args:
            vendor_id: Owning vendor
            page: Page number
            per_page: Items per page
            search: Partial match on product title or SKU
            status: Stock status filter; 'all' disables it
            sort_by: One of SORT_FIELDS
            sort_order: 'asc' or 'desc'
            low_stock: Shortcut for status=low_stock
            out_of_stock: Shortcut for status=out_of_stock (wins over low_stock)

        Returns:
            Tuple of (pagination_object, applied_filters_dict)
        """
        query = (Inventory.query
                 .options(joinedload(Inventory.product))
                 .filter(Inventory.vendor_id == vendor_id))

        if low_stock:
            status = 'low_stock'
        if out_of_stock:
            status = 'out_of_stock'
        if status and status != 'all':
            query = query.filter(Inventory.stock_status == status)

        if search:
            pattern = contains_pattern(search)
            query = query.join(Inventory.product).filter(db.or_(
                Product.title.ilike(pattern, escape=LIKE_ESCAPE),
                Product.sku.ilike(pattern, escape=LIKE_ESCAPE),
            ))

        column = SORT_FIELDS.get(sort_by, SORT_FIELDS[DEFAULT_SORT_FIELD])
        order = column.asc() if sort_order == 'asc' else column.desc()
        query = query.order_by(order, Inventory.id.desc())

        applied = {'search': search, 'status': status or 'all',
                   'sort_by': sort_by if sort_by in SORT_FIELDS else DEFAULT_SORT_FIELD,
                   'sort_order': 'asc' if sort_order == 'asc' else 'desc'}
        return query.paginate(page=page, per_page=per_page, error_out=False), applied

    @staticmethod
    def get_summary(vendor_id: int) -> Dict[str, Any]:
        total_items, total_stock, total_value, low, out = db.session.query(
            db.func.count(Inventory.id),
            db.func.coalesce(db.func.sum(Inventory.current_stock), 0),
            db.func.coalesce(db.func.sum(Inventory.current_stock * _unit_cost()), 0),
            db.func.sum(db.case((Inventory.stock_status == 'low_stock', 1), else_=0)),
            db.func.sum(db.case((Inventory.stock_status == 'out_of_stock', 1), else_=0)),
        ).filter(Inventory.vendor_id == vendor_id).one()
        return {
            'total_items': total_items or 0,
            'total_stock': int(total_stock or 0),
            'total_value': round(float(total_value or 0), 2),
            'low_stock_items': int(low or 0),
            'out_of_stock_items': int(out or 0),
        }

    @staticmethod
    def get_low_stock_items(vendor_id: int) -> List[Inventory]:
        return (Inventory.query
                .filter(Inventory.vendor_id == vendor_id,
                        Inventory.stock_status.in_(('low_stock', 'out_of_stock')))
                .order_by(Inventory.available_stock.asc())
                .all())

    @staticmethod
    def get_reorder_items(vendor_id: int) -> List[Inventory]:
        return (Inventory.query
                .filter(Inventory.vendor_id == vendor_id,
                        Inventory.auto_reorder_enabled.is_(True),
                        Inventory.available_stock <= Inventory.reorder_point)
                .all())

    @staticmethod
    def get_alerts(vendor_id: int, acknowledged: bool = False, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Alerts across the vendor's inventory, newest first."""
        query = (InventoryAlert.query
                 .join(InventoryAlert.inventory)
                 .filter(Inventory.vendor_id == vendor_id,
                         InventoryAlert.acknowledged.is_(acknowledged))
                 .order_by(InventoryAlert.created_at.desc(), InventoryAlert.id.desc()))
        if limit:
            query = query.limit(limit)
        return [_alert_dict(alert) for alert in query.all()]

    @staticmethod
    def get_overview(vendor_id: int) -> Dict[str, Any]:
        recent = (Inventory.query
                  .options(joinedload(Inventory.product))
                  .filter(Inventory.vendor_id == vendor_id)
                  .order_by(Inventory.last_stock_update.desc(), Inventory.id.desc())
                  .limit(RECENT_ITEMS_LIMIT).all())
        return {
            'summary': InventoryService.get_summary(vendor_id),
            'recent_movements': [item.to_dict(include_audit_fields=False) for item in recent],
            'low_stock_items': [item.to_dict(include_audit_fields=False)
                                for item in InventoryService.get_low_stock_items(vendor_id)],
            'reorder_items': [item.to_dict(include_audit_fields=False)
                              for item in InventoryService.get_reorder_items(vendor_id)],
            'alerts': InventoryService.get_alerts(vendor_id, limit=OVERVIEW_ALERT_LIMIT),
        }

    @staticmethod
    def get_movements(inventory: Inventory, page: int = 1, per_page: int = 50) -> Pagination:
        return (StockMovement.query
                .filter(StockMovement.inventory_id == inventory.id)
                .order_by(StockMovement.timestamp.desc(), StockMovement.id.desc())
                .paginate(page=page, per_page=per_page, error_out=False))

    @staticmethod
    def get_analytics(vendor_id: int, period: int = 30, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Movement totals by type, status distribution and highest-value rows.

        Args:
            vendor_id: Owning vendor
            period: Look-back window in days for movements

        Returns:
            dict with movement_analytics, status_distribution, top_value_products and period
        """
        start = (now or datetime.utcnow()) - timedelta(days=period)

        movement_rows = (db.session.query(
                StockMovement.movement_type,
                db.func.sum(db.func.abs(StockMovement.quantity)),
                db.func.count(StockMovement.id))
            .join(Inventory, StockMovement.inventory_id == Inventory.id)
            .filter(Inventory.vendor_id == vendor_id, StockMovement.timestamp >= start)
            .group_by(StockMovement.movement_type)
            .order_by(StockMovement.movement_type)
            .all())

        status_rows = (db.session.query(
                Inventory.stock_status,
                db.func.count(Inventory.id),
                db.func.sum(Inventory.current_stock))
            .filter(Inventory.vendor_id == vendor_id)
            .group_by(Inventory.stock_status)
            .order_by(Inventory.stock_status)
            .all())

        stock_value = (Inventory.current_stock * _unit_cost()).label('stock_value')
        top_rows = (db.session.query(Inventory, stock_value)
                    .options(joinedload(Inventory.product))
                    .filter(Inventory.vendor_id == vendor_id)
                    .order_by(stock_value.desc(), Inventory.id)
                    .limit(TOP_VALUE_LIMIT)
                    .all())

        return {
            'movement_analytics': [{'type': movement_type, 'total_quantity': int(total or 0), 'count': count}
                                   for movement_type, total, count in movement_rows],
            'status_distribution': [{'status': status, 'count': count, 'total_stock': int(total or 0)}
                                    for status, count, total in status_rows],
            'top_value_products': [{
                'inventory_id': inventory.id,
                'product_name': inventory.product.title if inventory.product else None,
                'product_sku': inventory.product.sku if inventory.product else None,
                'current_stock': inventory.current_stock,
                'stock_value': round(float(value or 0), 2),
                'stock_status': inventory.stock_status,
            } for inventory, value in top_rows],
            'period': period,
        }
