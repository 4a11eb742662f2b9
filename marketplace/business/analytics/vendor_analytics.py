from __future__ import annotations

from collections import OrderedDict
from datetime import datetime, timedelta

from flask import current_app

from marketplace.data.catalog.product import Product
from marketplace.data.core.vendor import Vendor
from marketplace.data.orders import order_status as status
from marketplace.business.analytics.order_normalizer import load_vendor_orders
from marketplace.logger import get_logger

logger = get_logger("marketplace.business.analytics")

DASHBOARD_LOW_STOCK_LEVEL = 5
CHART_LOW_STOCK_LEVEL = 10
TOP_PRODUCTS_LIMIT = 10
TOP_CUSTOMERS_LIMIT = 20
DEFAULT_TIME_RANGE = 30

STATUS_BUCKETS = (
    ('processing', 'Processing', '#F59E0B'),
    ('shipped', 'Shipped', '#3B82F6'),
    ('delivered', 'Delivered', '#10B981'),
    ('cancelled', 'Cancelled', '#EF4444'),
    ('cancelled_by_customer', 'Cancelled by Customer', '#9CA3AF'),
)
BUCKET_KEYS = tuple(key for key, _, _ in STATUS_BUCKETS)


def money(value) -> float:
    return round(float(value or 0), 2)


def percent(part, whole) -> float:
    return round(part / whole * 100, 2) if whole else 0


def status_bucket(order_status: str) -> str:
    """Map an order status onto the five chart buckets; anything unrecognised counts as processing."""
    if order_status in status.CUSTOMER_CANCELLED_STATUSES:
        return 'cancelled_by_customer'
    if order_status == status.REJECTED:
        return 'cancelled'
    if order_status in BUCKET_KEYS:
        return order_status
    return 'processing'


def parse_day(value, end_of_day=False):
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00')).replace(tzinfo=None)
    if end_of_day and len(str(value)) <= 10:
        parsed = parsed + timedelta(days=1) - timedelta(microseconds=1)
    return parsed


class VendorAnalytics:
    """
    Sales statistics for one vendor over all of its normalized orders.

    Revenue figures are net of the vendor's commission unless named gross.
    ``now`` is injectable so period boundaries are deterministic in tests.
    """

    def __init__(self, vendor: Vendor, now: datetime | None = None):
        self.vendor = vendor
        self.now = now or datetime.utcnow()
        default_rate = current_app.config.get('DEFAULT_COMMISSION_RATE', 20)
        self.commission = vendor.effective_commission_rate(default_rate)
        self._orders = None
        self._products = None

    @property
    def orders(self):
        if self._orders is None:
            self._orders = load_vendor_orders(self.vendor.id)
        return self._orders

    @property
    def products(self):
        if self._products is None:
            self._products = Product.query.filter_by(vendor_id=self.vendor.id).all()
        return self._products

    @property
    def month_start(self) -> datetime:
        return self.now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    def net(self, gross) -> float:
        return (gross or 0) * (1 - self.commission)

    def _product_lookup(self):
        return {product.id: product for product in self.products}

    # Dashboard

    def dashboard_stats(self) -> dict:
        orders = self.orders
        delivered = [o for o in orders if o.status == status.DELIVERED]
        delivered_this_month = [o for o in delivered if o.completed_at >= self.month_start]

        total_revenue = sum(self.net(o.total_amount) for o in delivered)
        month_revenue = sum(self.net(o.total_amount) for o in delivered_this_month)

        customers = {o.customer_key for o in delivered if o.customer_key}
        customers_this_month = {o.customer_key for o in delivered_this_month if o.customer_key}

        products = self.products
        return {
            'orders': {
                'total': len(orders),
                'completed': len(delivered),
                'cancelled': sum(1 for o in orders if o.status in (status.CANCELLED, status.REJECTED)),
                'cancelled_by_customer': sum(1 for o in orders if o.status in status.CUSTOMER_CANCELLED_STATUSES),
                'this_month': sum(1 for o in orders if o.created_at and o.created_at >= self.month_start),
            },
            'products': {
                'total': len(products),
                'total_value': money(sum(p.price or 0 for p in products)),
                'sold_this_month': sum(o.units for o in delivered_this_month),
                'out_of_stock': sum(1 for p in products if (p.stock or 0) == 0),
                'low_stock': sum(1 for p in products if 0 < (p.stock or 0) < DASHBOARD_LOW_STOCK_LEVEL),
            },
            'revenue': {
                'total': money(total_revenue),
                'this_month': money(month_revenue),
                'avg_order_value': money(total_revenue / len(delivered)) if delivered else 0,
                'commission_rate': round(self.commission * 100, 2),
            },
            'customers': {
                'total': len(customers),
                'this_month': len(customers_this_month),
            },
            'performance': {
                'conversion_rate': percent(len(delivered), len(orders)),
                'delivered_this_month': len(delivered_this_month),
            },
            'period': {
                'this_month_start': self.month_start.isoformat(),
                'now': self.now.isoformat(),
            },
        }

    # Analytics

    def analytics_stats(self, time_range=DEFAULT_TIME_RANGE) -> dict:
        """
        Time-windowed analytics with daily chart series.

        Args:
            time_range: Window length in days, counted back from now

        Returns:
            dict with summary, charts and period sections
        """
        try:
            time_range = int(time_range)
        except (TypeError, ValueError):
            time_range = DEFAULT_TIME_RANGE
        if time_range < 1:
            time_range = DEFAULT_TIME_RANGE

        start = self.now - timedelta(days=time_range)
        in_range = [o for o in self.orders if o.created_at and o.created_at >= start]
        delivered = [o for o in in_range if o.status == status.DELIVERED]

        total_revenue = sum(self.net(o.total_amount) for o in delivered)
        monthly_revenue = sum(self.net(o.total_amount) for o in delivered if o.completed_at >= self.month_start)

        daily = OrderedDict()
        for offset in range(time_range - 1, -1, -1):
            day = (self.now - timedelta(days=offset)).date().isoformat()
            daily[day] = {'date': day, 'sales': 0, 'orders': 0, 'revenue': 0.0}
        for order in delivered:
            bucket = daily.get(order.completed_at.date().isoformat())
            if bucket is None:
                continue
            bucket['sales'] += order.units
            bucket['orders'] += 1
            bucket['revenue'] += self.net(order.total_amount)
        sales_data = [dict(bucket, revenue=money(bucket['revenue'])) for bucket in daily.values()]
        revenue_data = [{'date': b['date'], 'revenue': b['revenue'], 'orders': b['orders']} for b in sales_data]

        breakdown = OrderedDict((key, 0) for key, _, _ in STATUS_BUCKETS)
        for order in in_range:
            breakdown[status_bucket(order.status)] += 1
        order_status_data = [{'name': label, 'value': breakdown[key], 'color': color}
                             for key, label, color in STATUS_BUCKETS if breakdown[key] > 0]

        products = self.products
        stock = {
            'in_stock': sum(1 for p in products if (p.stock or 0) > CHART_LOW_STOCK_LEVEL),
            'low_stock': sum(1 for p in products if 0 < (p.stock or 0) <= CHART_LOW_STOCK_LEVEL),
            'out_of_stock': sum(1 for p in products if (p.stock or 0) == 0),
        }
        stock_data = [{'name': label, 'value': stock[key], 'color': color} for key, label, color in (
            ('in_stock', 'In Stock', '#10B981'),
            ('low_stock', 'Low Stock', '#F59E0B'),
            ('out_of_stock', 'Out of Stock', '#EF4444'),
        ) if stock[key] > 0]

        product_sales = {}
        for order in delivered:
            for line in order.items:
                key = line.product_id if line.product_id is not None else line.title
                entry = product_sales.setdefault(key, {'name': line.title or 'Unknown Product',
                                                       'sales': 0, 'revenue': 0.0, 'orders': 0})
                entry['sales'] += line.quantity or 0
                entry['revenue'] += self.net(line.total)
                entry['orders'] += 1
        top_products = [dict(entry, revenue=money(entry['revenue']))
                        for entry in sorted(product_sales.values(), key=lambda e: e['revenue'], reverse=True)
                        [:TOP_PRODUCTS_LIMIT]]

        categories = OrderedDict()
        for product in products:
            name = product.primary_category_name or 'Uncategorized'
            entry = categories.setdefault(name, {'name': name, 'products': 0, 'total_value': 0.0})
            entry['products'] += 1
            entry['total_value'] += product.price or 0
        category_data = [dict(entry, total_value=money(entry['total_value'])) for entry in categories.values()]

        customer_orders = {}
        for order in delivered:
            if order.customer_key:
                customer_orders[order.customer_key] = customer_orders.get(order.customer_key, 0) + 1
        repeat = sum(1 for count in customer_orders.values() if count > 1)

        summary = {
            'total_orders': len(in_range),
            'delivered_orders': len(delivered),
            'total_revenue': money(total_revenue),
            'monthly_revenue': money(monthly_revenue),
            'products_sold': sum(o.units for o in delivered),
            'avg_order_value': money(total_revenue / len(delivered)) if delivered else 0,
            'conversion_rate': percent(len(delivered), len(in_range)),
            'repeat_customer_rate': percent(repeat, len(customer_orders)),
        }
        logger.debug(f"Analytics for vendor {self.vendor.id} over {time_range} days: {summary}")
        return {
            'summary': summary,
            'charts': {
                'sales_data': sales_data,
                'revenue_data': revenue_data,
                'top_products': top_products,
                'category_data': category_data,
                'order_status_data': order_status_data,
                'stock_data': stock_data,
            },
            'period': {
                'time_range': time_range,
                'start_date': start.isoformat(),
                'end_date': self.now.isoformat(),
                'this_month_start': self.month_start.isoformat(),
            },
        }

    # Sales report

    def sales_report(self, time_range=DEFAULT_TIME_RANGE, start_date=None, end_date=None,
                     order_status=None, category=None) -> dict:
        """
        Gross sales over a date window.

        An explicit ``start_date``/``end_date`` pair wins over ``time_range``.
        ``category`` keeps orders with at least one line in that category and
        restricts the line figures to it.
        """
        start, end = parse_day(start_date), parse_day(end_date, end_of_day=True)
        if start is None or end is None:
            try:
                days = int(time_range)
            except (TypeError, ValueError):
                days = DEFAULT_TIME_RANGE
            start, end = self.now - timedelta(days=days), self.now
        if start > end:
            raise ValueError('start_date must be before end_date')

        orders = [o for o in self.orders if o.created_at and start <= o.created_at <= end]
        if order_status:
            wanted = order_status.strip().lower()
            orders = [o for o in orders if o.status == wanted]

        lookup = self._product_lookup()

        def line_category(line):
            product = lookup.get(line.product_id)
            return (product.primary_category_name if product else None) or 'Uncategorized'

        wanted_category = category.strip().lower() if category else None
        report_orders = []
        for order in orders:
            lines = order.items
            if wanted_category:
                lines = [line for line in lines if line_category(line).lower() == wanted_category]
                if not lines:
                    continue
            report_orders.append((order, lines))

        total_sales, units = 0.0, 0
        daily, by_category, by_product, customers = {}, {}, {}, {}
        for order, lines in report_orders:
            subtotal = sum(line.total for line in lines)
            total_sales += subtotal
            day = order.created_at.date().isoformat()
            daily[day] = daily.get(day, 0) + subtotal

            for line in lines:
                units += line.quantity or 0
                category_name = line_category(line)
                by_category[category_name] = by_category.get(category_name, 0) + line.total
                key = line.product_id if line.product_id is not None else line.title
                entry = by_product.setdefault(key, {'product_id': line.product_id, 'name': line.title,
                                                    'category': category_name, 'units_sold': 0, 'revenue': 0.0})
                entry['units_sold'] += line.quantity or 0
                entry['revenue'] += line.total

            customer_key = order.customer_key or 'guest'
            customer = customers.setdefault(customer_key, {
                'name': order.customer_name or 'Guest',
                'email': order.customer_email,
                'orders_count': 0,
                'total_spent': 0.0,
                'last_order': order.created_at,
            })
            customer['orders_count'] += 1
            customer['total_spent'] += subtotal
            customer['last_order'] = max(customer['last_order'], order.created_at)

        product_sales = []
        for entry in sorted(by_product.values(), key=lambda e: e['revenue'], reverse=True):
            product_sales.append(dict(entry, revenue=money(entry['revenue']),
                                      average_price=money(entry['revenue'] / entry['units_sold'])
                                      if entry['units_sold'] else 0))

        top_customers = []
        for customer in sorted(customers.values(), key=lambda c: c['total_spent'], reverse=True)[:TOP_CUSTOMERS_LIMIT]:
            top_customers.append(dict(customer,
                                      total_spent=money(customer['total_spent']),
                                      average_order=money(customer['total_spent'] / customer['orders_count']),
                                      last_order=customer['last_order'].isoformat()))

        return {
            'summary': {
                'total_sales': money(total_sales),
                'orders_count': len(report_orders),
                'average_order': money(total_sales / max(len(report_orders), 1)),
                'units_sold': units,
            },
            'daily_sales': [{'date': day, 'sales': money(value)} for day, value in sorted(daily.items())],
            'category_sales': [{'name': name, 'value': money(value)}
                               for name, value in sorted(by_category.items(), key=lambda kv: kv[1], reverse=True)],
            'product_sales': product_sales,
            'top_customers': top_customers,
            'period': {'start_date': start.isoformat(), 'end_date': end.isoformat()},
        }
