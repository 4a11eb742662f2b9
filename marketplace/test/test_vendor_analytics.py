"""
Vendor dashboard, analytics and sales report figures
"""
from datetime import datetime

import pytest

from marketplace.business.analytics.order_normalizer import load_vendor_orders, LEGACY_ORDER, VENDOR_ORDER
from marketplace.business.analytics.vendor_analytics import VendorAnalytics, status_bucket
from marketplace.data.orders.order import Order, OrderItem
from marketplace.data.orders.vendor_order import VendorOrder, VendorOrderItem
from marketplace.test.conftest import make_vendor

NOW = datetime(2026, 3, 20, 12, 0)


def vendor_order(vendor, number, status, created_at, lines, email, delivered_at=None, parent=None):
    order = VendorOrder(
        order_number=number,
        vendor_id=vendor.id,
        parent_order=parent,
        status=status,
        customer_name=email.split('@')[0].title(),
        customer_email=email,
        total_amount=sum(product.price * quantity for product, quantity in lines),
        created_at=created_at,
        delivered_at=delivered_at,
    )
    for product, quantity in lines:
        order.items.append(VendorOrderItem(product_id=product.id, title=product.title, price=product.price,
                                           quantity=quantity, item_total=product.price * quantity))
    return order


def legacy_order(number, status, created_at, lines, email):
    order = Order(order_number=number, name=email.split('@')[0].title(), email=email,
                  status=status, created_at=created_at)
    for product, quantity, vendor_id in lines:
        order.items.append(OrderItem(product_id=product.id, vendor_id=vendor_id, title=product.title,
                                     price=product.price, quantity=quantity))
    return order


@pytest.fixture
def sales(db, vendor, make_product):
    """
    Five orders for the vendor: two delivered vendor orders (one of them split
    from a legacy order), a customer cancellation, a rejection and an
    unsplit delivered legacy order.
    """
    other = make_vendor('Bolt Hardware')
    lamp = make_product('Lamp', price=50.0, stock=3, vendor=vendor)
    rug = make_product('Rug', price=100.0, stock=0, vendor=vendor)
    chair = make_product('Chair', price=30.0, stock=30, vendor=vendor)
    hammer = make_product('Hammer', price=12.0, stock=8, vendor=other)

    split_parent = legacy_order('ORD-SPLIT', 'delivered', datetime(2026, 3, 10, 9), [(lamp, 2, vendor.id)],
                                'ann@example.com')
    unsplit = legacy_order('ORD-LEGACY', 'Delivered', datetime(2026, 3, 5, 9),
                           [(chair, 1, vendor.id), (hammer, 3, other.id)], 'cat@example.com')
    db.session.add_all([
        split_parent,
        unsplit,
        vendor_order(vendor, 'ORD-SPLIT-V1', 'delivered', datetime(2026, 3, 10, 9), [(lamp, 2)],
                     'ann@example.com', delivered_at=datetime(2026, 3, 12, 15), parent=split_parent),
        vendor_order(vendor, 'ORD-FEB-V1', 'delivered', datetime(2026, 2, 20, 9), [(rug, 1)],
                     'ann@example.com', delivered_at=datetime(2026, 2, 22, 10)),
        vendor_order(vendor, 'ORD-CANCEL-V1', 'cancelled_by_customer', datetime(2026, 3, 15, 9), [(lamp, 1)],
                     'bob@example.com'),
        vendor_order(vendor, 'ORD-REJECT-V1', 'rejected', datetime(2026, 3, 16, 9), [(chair, 1)],
                     'bob@example.com'),
    ])
    db.session.commit()
    return {'lamp': lamp, 'rug': rug, 'chair': chair}


def test_split_legacy_orders_are_counted_once(vendor, sales):
    orders = load_vendor_orders(vendor.id)

    numbers = [order.order_number for order in orders]
    assert 'ORD-SPLIT' not in numbers
    assert numbers[0] == 'ORD-REJECT-V1', "Newest first"

    legacy = next(order for order in orders if order.order_type == LEGACY_ORDER)
    assert legacy.order_number == 'ORD-LEGACY'
    assert legacy.status == 'delivered'
    assert legacy.total_amount == pytest.approx(30.0), "Only this vendor's lines count"
    assert [line.title for line in legacy.items] == ['Chair']
    assert sum(1 for order in orders if order.order_type == VENDOR_ORDER) == 4


def test_dashboard_stats(vendor, sales):
    stats = VendorAnalytics(vendor, now=NOW).dashboard_stats()

    assert stats['orders'] == {
        'total': 5,
        'completed': 3,
        'cancelled': 1,
        'cancelled_by_customer': 1,
        'this_month': 4,
    }
    assert stats['products']['total'] == 3
    assert stats['products']['total_value'] == pytest.approx(180.0)
    assert stats['products']['sold_this_month'] == 3
    assert stats['products']['out_of_stock'] == 1
    assert stats['products']['low_stock'] == 1

    # Revenue is net of the vendor's 10% commission
    assert stats['revenue']['total'] == pytest.approx(207.0)
    assert stats['revenue']['this_month'] == pytest.approx(117.0)
    assert stats['revenue']['avg_order_value'] == pytest.approx(69.0)
    assert stats['revenue']['commission_rate'] == pytest.approx(10.0)
    assert stats['customers'] == {'total': 2, 'this_month': 2}
    assert stats['performance']['conversion_rate'] == pytest.approx(60.0)


def test_analytics_stats(vendor, sales):
    analytics = VendorAnalytics(vendor, now=NOW).analytics_stats(30)

    summary = analytics['summary']
    assert summary['total_orders'] == 5
    assert summary['delivered_orders'] == 3
    assert summary['products_sold'] == 4
    assert summary['repeat_customer_rate'] == pytest.approx(50.0)

    charts = analytics['charts']
    assert len(charts['sales_data']) == 30
    assert charts['sales_data'][-1]['date'] == '2026-03-20'
    march_12 = next(day for day in charts['sales_data'] if day['date'] == '2026-03-12')
    assert march_12 == {'date': '2026-03-12', 'sales': 2, 'orders': 1, 'revenue': 90.0}

    assert charts['order_status_data'] == [
        {'name': 'Delivered', 'value': 3, 'color': '#10B981'},
        {'name': 'Cancelled', 'value': 1, 'color': '#EF4444'},
        {'name': 'Cancelled by Customer', 'value': 1, 'color': '#9CA3AF'},
    ]
    assert [entry['value'] for entry in charts['stock_data']] == [1, 1, 1]
    assert {entry['name'] for entry in charts['top_products']} == {'Lamp', 'Rug', 'Chair'}
    assert charts['top_products'][-1] == {'name': 'Chair', 'sales': 1, 'revenue': 27.0, 'orders': 1}
    assert charts['category_data'] == [{'name': 'Uncategorized', 'products': 3, 'total_value': 180.0}]


def test_analytics_time_range_falls_back_to_default(vendor, sales):
    analytics = VendorAnalytics(vendor, now=NOW)
    assert analytics.analytics_stats('not-a-number')['period']['time_range'] == 30
    assert analytics.analytics_stats(0)['period']['time_range'] == 30
    assert analytics.analytics_stats(7)['summary']['total_orders'] == 2


def test_sales_report(vendor, sales):
    analytics = VendorAnalytics(vendor, now=NOW)

    report = analytics.sales_report(start_date='2026-03-01', end_date='2026-03-20', order_status='Delivered')
    assert report['summary'] == {'total_sales': 130.0, 'orders_count': 2, 'average_order': 65.0, 'units_sold': 3}
    assert report['daily_sales'] == [{'date': '2026-03-05', 'sales': 30.0}, {'date': '2026-03-10', 'sales': 100.0}]
    assert report['product_sales'][0]['name'] == 'Lamp'
    assert report['product_sales'][0]['average_price'] == pytest.approx(50.0)
    assert [customer['email'] for customer in report['top_customers']] == ['ann@example.com', 'cat@example.com']
    assert report['period']['end_date'].startswith('2026-03-20T23:59:59')

    assert analytics.sales_report(category='Lighting')['summary']['orders_count'] == 0

    with pytest.raises(ValueError):
        analytics.sales_report(start_date='2026-03-20', end_date='2026-03-01')
    with pytest.raises(ValueError):
        analytics.sales_report(start_date='yesterday', end_date='2026-03-01')


@pytest.mark.parametrize('order_status, bucket', [
    ('placed', 'processing'),
    ('accepted', 'processing'),
    ('shipped', 'shipped'),
    ('delivered', 'delivered'),
    ('rejected', 'cancelled'),
    ('cancelled_by_user', 'cancelled_by_customer'),
    ('on_hold', 'processing'),
])
def test_status_bucket(order_status, bucket):
    assert status_bucket(order_status) == bucket


def test_vendor_analytics_api(app, vendor_client, customer_client):
    response = vendor_client.get('/api/vendor/dashboard/stats')
    assert response.status_code == 200
    assert response.get_json()['data']['stats']['orders']['total'] == 0

    response = vendor_client.get('/api/vendor/analytics/stats?timeRange=7')
    assert response.get_json()['data']['time_range'] == '7 days'

    response = vendor_client.get('/api/vendor/analytics/sales-report?start_date=2026-03-20&end_date=2026-03-01')
    assert response.status_code == 400

    assert customer_client.get('/api/vendor/dashboard/stats').status_code == 403
