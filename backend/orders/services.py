import logging
from django.db import transaction
from django.utils import timezone
from backend.catalog.models import Product
from backend.core.utils import create_audit_log
from backend.inventory.services import StockService
from .calculations import calculate_line, calculate_order_totals, money
from .exceptions import InvalidStatusTransition, OrderError
from .models import Order, OrderItem

logger = logging.getLogger(__name__)

FINAL_STATUSES = {Order.STATUS_CANCELLED}


def _resolve_items(theater, items):
    """Turn [{'product': id or Product, 'quantity': n}] into priced line dicts"""
    if not items:
        raise OrderError('Order must contain at least one item')

    product_ids = [item['product'].id if isinstance(item['product'], Product) else item['product']
                   for item in items]
    products = Product.objects.in_bulk(product_ids)

    lines = []
    for product_id, item in zip(product_ids, items):
        product = products.get(product_id)
        if product is None or product.theater_id != theater.id:
            raise OrderError(f'Product {product_id} not found')
        if not product.is_active or not product.is_available:
            raise OrderError(f'Product {product.name} is not available')
        quantity = int(item['quantity'])
        if quantity <= 0:
            raise OrderError(f'Quantity for {product.name} must be positive')
        lines.append({
            'product': product,
            'quantity': quantity,
            'unit_price': product.base_price,
            'tax_rate': product.tax_rate,
            'gst_type': product.gst_type,
            'discount_percentage': product.discount_percentage,
        })
    return lines


def create_order(theater, items, source=Order.SOURCE_POS, user=None, request=None, qr_code=None, seat='',
                 customer_name='', customer_phone='', payment_method='cash', notes=''):
    """
    Create an order with priced lines and record a FIFO sale for every
    stock-tracked product. Stock shortfalls never block the order.
    """
    lines = _resolve_items(theater, items)
    totals = calculate_order_totals(lines)

    with transaction.atomic():
        order = Order.objects.create(
            order_number=Order.generate_order_number(),
            theater=theater,
            source=source,
            qr_code=qr_code,
            seat=seat or (qr_code.seat if qr_code else ''),
            customer_name=customer_name,
            customer_phone=customer_phone,
            payment_method=payment_method,
            subtotal=totals['subtotal'],
            discount_amount=totals['discount'],
            tax_amount=totals['tax'],
            total=totals['total'],
            notes=notes,
            created_by=user if user is not None and user.is_authenticated else None,
        )

        OrderItem.objects.bulk_create([
            OrderItem(
                order=order,
                product=line['product'],
                product_name=line['product'].name,
                quantity=line['quantity'],
                unit_price=line['unit_price'],
                gst_type=line['gst_type'],
                tax_rate=line['tax_rate'],
                discount_percentage=line['discount_percentage'],
                **_line_amounts(line),
            )
            for line in lines
        ])

        sale_date = timezone.localdate()
        for line in lines:
            if line['product'].track_stock:
                StockService.record_sale(theater, line['product'], line['quantity'], sale_date=sale_date,
                                         reference=order.order_number, user=user)

    logger.info(f"Order {order.order_number} created in theater {theater.id} ({source}), total {order.total}")
    create_audit_log(
        request=request,
        action='order_create',
        model_name='Order',
        object_id=order.id,
        user=user,
        theater=theater,
        object_name=f"Order {order.order_number}",
        object_reference=order.order_number,
        changes={
            'source': source,
            'total': str(order.total),
            'items': [f"{line['product'].name} x{line['quantity']}" for line in lines],
        },
    )
    return order


def _line_amounts(line):
    amounts = calculate_line(line['unit_price'], line['quantity'], line['tax_rate'],
                             line['gst_type'], line['discount_percentage'])
    return {
        'discount_amount': money(amounts['discount']),
        'tax_amount': money(amounts['tax']),
        'line_total': money(amounts['total']),
    }


def update_order_status(order, new_status, user=None, request=None):
    """
    Move an order to a new status. Cancelling puts every stock-tracked
    item back on the shelf as a RETURNED batch.
    """
    valid = {choice for choice, _ in Order.STATUS_CHOICES}
    if new_status not in valid:
        raise InvalidStatusTransition(f'Invalid status: {new_status}')
    if order.status in FINAL_STATUSES:
        raise InvalidStatusTransition(f'Order {order.order_number} is already {order.status}')

    old_status = order.status
    if old_status == new_status:
        return order

    with transaction.atomic():
        order.status = new_status
        update_fields = ['status', 'updated_at']
        if new_status == Order.STATUS_CANCELLED:
            order.cancelled_at = timezone.now()
            update_fields.append('cancelled_at')
            return_date = timezone.localdate()
            for item in order.items.select_related('product'):
                if item.product is not None and item.product.track_stock:
                    StockService.record_return(order.theater, item.product, item.quantity,
                                               return_date=return_date, reference=order.order_number,
                                               user=user)
        order.save(update_fields=update_fields)

    logger.info(f"Order {order.order_number} status {old_status} -> {new_status}")
    create_audit_log(
        request=request,
        action='order_cancel' if new_status == Order.STATUS_CANCELLED else 'order_status',
        model_name='Order',
        object_id=order.id,
        user=user,
        theater=order.theater,
        object_name=f"Order {order.order_number}",
        object_reference=order.order_number,
        changes={'status': {'old': old_status, 'new': new_status}},
    )
    return order
