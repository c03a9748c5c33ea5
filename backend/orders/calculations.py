"""
Order total calculations with GST and discount support.

INCLUDE: the unit price already contains GST; tax is extracted from the
discounted amount for display only.
EXCLUDE: GST is charged on top of the discounted amount.
"""
from decimal import Decimal, ROUND_HALF_UP

TWO_PLACES = Decimal('0.01')
HUNDRED = Decimal('100')


def money(value):
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _is_include(gst_type):
    return 'INCLUDE' in (gst_type or '').upper()


def calculate_line(unit_price, quantity, tax_rate=0, gst_type='EXCLUDE', discount_percentage=0):
    """
    Unrounded amounts of one order line.

    Returns dict with gross (price x quantity), discount, tax and total.
    """
    unit_price = Decimal(str(unit_price or 0))
    tax_rate = Decimal(str(tax_rate or 0))
    discount_percentage = Decimal(str(discount_percentage or 0))

    gross = unit_price * int(quantity or 0)
    discount = gross * discount_percentage / HUNDRED if discount_percentage > 0 else Decimal('0')
    discounted = gross - discount

    if _is_include(gst_type):
        tax = discounted * tax_rate / (HUNDRED + tax_rate)
        total = discounted
    else:
        tax = discounted * tax_rate / HUNDRED
        total = discounted + tax

    return {'gross': gross, 'discount': discount, 'tax': tax, 'total': total}


def calculate_order_totals(items):
    """
    Order totals from an iterable of dicts with unit_price, quantity,
    tax_rate, gst_type and discount_percentage.

    Components are rounded to two places before the total is formed.
    When any line is GST INCLUDE the tax is already inside the prices, so
    total = subtotal - discount; otherwise total = subtotal - discount + tax.
    """
    subtotal = Decimal('0')
    discount = Decimal('0')
    tax = Decimal('0')
    has_include = False

    for item in items:
        line = calculate_line(item.get('unit_price'), item.get('quantity'), item.get('tax_rate'),
                              item.get('gst_type'), item.get('discount_percentage'))
        has_include = has_include or _is_include(item.get('gst_type'))
        subtotal += line['gross']
        discount += line['discount']
        tax += line['tax']

    subtotal = money(subtotal)
    discount = money(discount)
    tax = money(tax)
    total = subtotal - discount if has_include else subtotal - discount + tax

    return {
        'subtotal': subtotal,
        'discount': discount,
        'tax': tax,
        'total': money(total),
    }
