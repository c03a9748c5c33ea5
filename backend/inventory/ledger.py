"""
Pure stock ledger arithmetic.

Nothing here touches the database: the functions work on any objects exposing
the ``StockEntry`` quantity attributes so they can be reused for previews and tests.
"""
from .models import StockEntry

QUANTITY_FIELDS = ('invord_stock', 'sales', 'expired_stock', 'damage_stock')


def quantity_fields(entry_type, quantity):
    """Split an entry quantity into the ledger column it moves"""
    fields = dict.fromkeys(QUANTITY_FIELDS, 0)
    if entry_type in StockEntry.BATCH_TYPES:
        fields['invord_stock'] = quantity
    elif entry_type == StockEntry.TYPE_SOLD:
        fields['sales'] = quantity
    elif entry_type == StockEntry.TYPE_EXPIRED:
        fields['expired_stock'] = quantity
    elif entry_type == StockEntry.TYPE_DAMAGED:
        fields['damage_stock'] = quantity
    elif entry_type == StockEntry.TYPE_ADJUSTMENT:
        if quantity > 0:
            fields['invord_stock'] = quantity
        else:
            fields['sales'] = abs(quantity)
    else:
        raise ValueError(f"Unknown stock entry type: {entry_type}")
    return fields


def net_movement(entry):
    return entry.invord_stock - entry.sales - entry.expired_stock - entry.damage_stock


def sort_key(entry):
    # Unsaved entries sort after saved ones on the same day
    return (entry.date, entry.pk is None, entry.pk or 0)


def recalculate(opening_balance, entries):
    """
    Walk the entries in date order carrying a running balance.

    Each entry gets ``old_stock`` (its opening) and ``balance`` (its closing,
    clamped at zero). Returns the month totals and the closing balance plus
    the entries whose balances changed.
    """
    running = opening_balance
    totals = dict.fromkeys(QUANTITY_FIELDS, 0)
    changed = []

    for entry in sorted(entries, key=sort_key):
        balance = max(0, running + net_movement(entry))
        if entry.old_stock != running or entry.balance != balance:
            entry.old_stock = running
            entry.balance = balance
            changed.append(entry)
        for field in QUANTITY_FIELDS:
            totals[field] += getattr(entry, field)
        running = balance

    return {
        'total_invord_stock': totals['invord_stock'],
        'total_sales': totals['sales'],
        'total_expired_stock': totals['expired_stock'],
        'total_damage_stock': totals['damage_stock'],
        'closing_balance': running,
        'changed': changed,
    }
