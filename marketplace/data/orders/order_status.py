"""Order status values and the transitions vendors and admins may apply."""

PLACED = 'placed'
ACCEPTED = 'accepted'
REJECTED = 'rejected'
PROCESSING = 'processing'
SHIPPED = 'shipped'
DELIVERED = 'delivered'
CANCELLED = 'cancelled'
CANCELLED_BY_CUSTOMER = 'cancelled_by_customer'
CANCELLED_BY_USER = 'cancelled_by_user'

ORDER_STATUSES = (PLACED, PROCESSING, SHIPPED, DELIVERED, CANCELLED,
                  CANCELLED_BY_CUSTOMER, CANCELLED_BY_USER)
VENDOR_ORDER_STATUSES = (PLACED, ACCEPTED, REJECTED, PROCESSING, SHIPPED, DELIVERED,
                         CANCELLED, CANCELLED_BY_CUSTOMER)

CANCELLED_STATUSES = (CANCELLED, CANCELLED_BY_CUSTOMER, CANCELLED_BY_USER, REJECTED)
CUSTOMER_CANCELLED_STATUSES = (CANCELLED_BY_CUSTOMER, CANCELLED_BY_USER)

_CANCEL = [CANCELLED, CANCELLED_BY_CUSTOMER]

VENDOR_STATUS_TRANSITIONS = {
    PLACED: [ACCEPTED, REJECTED, PROCESSING] + _CANCEL,
    ACCEPTED: [PROCESSING, SHIPPED] + _CANCEL,
    PROCESSING: [SHIPPED] + _CANCEL,
    SHIPPED: [DELIVERED] + _CANCEL,
    DELIVERED: [],
    REJECTED: [],
    CANCELLED: [],
    CANCELLED_BY_CUSTOMER: [],
}


# Admin-handled lines move forward only; they are never accepted or rejected
ADMIN_STATUS_TRANSITIONS = {
    PLACED: [PROCESSING, SHIPPED, CANCELLED],
    PROCESSING: [SHIPPED, CANCELLED],
    SHIPPED: [DELIVERED, CANCELLED],
}


def can_transition(current, new):
    return new in VENDOR_STATUS_TRANSITIONS.get(current, [])


def can_admin_transition(current, new):
    return new in ADMIN_STATUS_TRANSITIONS.get(current, [])
