"""
Pharmacy stock ledger.

``Item.current_stock`` is the authoritative on-hand quantity. Receipts
add a ``StockBatch``; deductions consume batches oldest first (FIFO by
``received_at``). Every change writes a ``StockMovement`` audit row.
All writers lock the item row for the duration of their transaction.
"""
from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic.exceptions import Conflict, InsufficientStock
from clinic.models import Item, StockBatch, StockCorrection, StockMovement, User

logger = logging.getLogger(__name__)

MOVEMENT_LIMIT = 50


# ---------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------
def list_items(*, category: str | None = None, search: str | None = None, low_stock: bool = False):
    qs = Item.objects.filter(is_active=True)
    if category:
        qs = qs.filter(category=category)
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(code__icontains=search))
    if low_stock:
        qs = qs.filter(current_stock__lte=F('min_stock'))
    return qs.order_by('name')


def low_stock_items():
    return Item.objects.filter(is_active=True, current_stock__lte=F('min_stock')).order_by('current_stock')


def get_item(item_id, *, active_only: bool = True) -> Item:
    qs = Item.objects.filter(id=item_id)
    if active_only:
        qs = qs.filter(is_active=True)
    item = qs.first()
    if not item:
        raise NotFound('item not found')
    return item


def _lock_item(item_id) -> Item:
    item = Item.objects.select_for_update().filter(id=item_id, is_active=True).first()
    if not item:
        raise NotFound('item not found')
    return item


@transaction.atomic
def create_item(*, user: User | None = None, **fields) -> Item:
    """Create an item; a positive opening stock is received as the first batch."""
    if Item.objects.filter(code=fields.get('code')).exists():
        raise Conflict('item code already exists')
    opening = int(fields.get('current_stock') or 0)
    if opening < 0:
        raise ValidationError({'currentStock': 'opening stock cannot be negative'})
    item = Item.objects.create(**fields)
    if opening > 0:
        StockBatch.objects.create(item=item, quantity=opening, received_at=timezone.now())
        record_movement(item, StockMovement.TYPE_IN, opening, 'opening_stock', item.id, 'Opening stock', user)
    logger.info('item %s created with opening stock %s', item.code, opening)
    return item


def update_item(item: Item, **fields) -> Item:
    """Update descriptive fields; quantities change only through adjustments."""
    fields.pop('current_stock', None)
    code = fields.get('code')
    if code and Item.objects.filter(code=code).exclude(id=item.id).exists():
        raise Conflict('item code already exists')
    for key, value in fields.items():
        setattr(item, key, value)
    item.save()
    return item


def delete_item(item: Item) -> None:
    item.is_active = False
    item.save(update_fields=['is_active', 'updated_at'])
    logger.info('item %s deactivated', item.code)


# ---------------------------------------------------------------------
# Batches & FIFO
# ---------------------------------------------------------------------
def receive_batch(item: Item, quantity: int, *, received_at=None, expiry_at=None) -> StockBatch:
    return StockBatch.objects.create(
        item=item,
        quantity=quantity,
        received_at=received_at or timezone.now(),
        expiry_at=expiry_at,
    )


def consume_fifo(item: Item, quantity: int) -> list[tuple[StockBatch, int]]:
    """Deduct ``quantity`` from the oldest non-empty batches of ``item``.

    Returns the (batch, taken) pairs. Raises ``InsufficientStock`` when
    the batches cannot cover the quantity; callers run inside a
    transaction so partial deductions are rolled back.
    """
    remaining = quantity
    taken: list[tuple[StockBatch, int]] = []
    batches = (
        StockBatch.objects.select_for_update()
        .filter(item=item, quantity__gt=0)
        .order_by('received_at', 'created_at')
    )
    for batch in batches:
        if remaining <= 0:
            break
        deduct = min(batch.quantity, remaining)
        batch.quantity -= deduct
        batch.save(update_fields=['quantity'])
        taken.append((batch, deduct))
        remaining -= deduct
    if remaining > 0:
        logger.warning('FIFO shortfall of %s on item %s', remaining, item.code)
        raise InsufficientStock(f'insufficient batch stock for {item.code}: short by {remaining}')
    return taken


def batches_for(item: Item):
    return StockBatch.objects.filter(item=item).order_by('received_at', 'created_at')


# ---------------------------------------------------------------------
# Movements
# ---------------------------------------------------------------------
def record_movement(item: Item, movement_type: str, quantity: int, reference_type: str, reference_id,
                    notes: str, user: User | None) -> StockMovement:
    return StockMovement.objects.create(
        item=item,
        movement_type=movement_type,
        quantity=abs(quantity),
        reference_type=reference_type,
        reference_id=str(reference_id) if reference_id else '',
        notes=notes or '',
        created_by=user if user and user.is_authenticated else None,
    )


def list_movements(item_id=None, *, limit: int = MOVEMENT_LIMIT):
    qs = StockMovement.objects.select_related('item', 'created_by')
    if item_id:
        qs = qs.filter(item_id=item_id)
    return qs.order_by('-created_at')[:limit]


def list_corrections(item_id=None):
    qs = StockCorrection.objects.select_related('item', 'created_by')
    if item_id:
        qs = qs.filter(item_id=item_id)
    return qs.order_by('-created_at')


# ---------------------------------------------------------------------
# Adjustments
# ---------------------------------------------------------------------
def adjust_in(item_id, quantity: int, *, notes: str = '', user: User | None = None, expiry_at=None) -> Item:
    if quantity <= 0:
        raise ValidationError({'quantity': 'quantity must be positive'})
    with transaction.atomic():
        item = _lock_item(item_id)
        item.current_stock += quantity
        item.save(update_fields=['current_stock', 'updated_at'])
        receive_batch(item, quantity, expiry_at=expiry_at)
        record_movement(item, StockMovement.TYPE_IN, quantity, 'adjust_in', None, notes or 'Stock in', user)
    logger.info('item %s +%s (stock now %s)', item.code, quantity, item.current_stock)
    return item


def adjust_out(item_id, quantity: int, *, notes: str = '', user: User | None = None) -> Item:
    if quantity <= 0:
        raise ValidationError({'quantity': 'quantity must be positive'})
    with transaction.atomic():
        item = _lock_item(item_id)
        if item.current_stock < quantity:
            raise InsufficientStock(
                f'insufficient stock for {item.code}: available {item.current_stock}, requested {quantity}'
            )
        item.current_stock -= quantity
        item.save(update_fields=['current_stock', 'updated_at'])
        consume_fifo(item, quantity)
        record_movement(item, StockMovement.TYPE_OUT, quantity, 'adjust_out', None, notes or 'Stock out', user)
    logger.info('item %s -%s (stock now %s)', item.code, quantity, item.current_stock)
    return item


def adjust(item_id, quantity: int, *, notes: str = '', user: User | None = None) -> Item:
    """Signed adjustment: positive receives stock, negative issues it."""
    if quantity == 0:
        raise ValidationError({'quantity': 'quantity cannot be zero'})
    if quantity > 0:
        return adjust_in(item_id, quantity, notes=notes, user=user)
    return adjust_out(item_id, -quantity, notes=notes, user=user)


def apply_correction(item: Item, delta: int, *, reason: str, user: User | None,
                     reference_type: str, reference_id=None) -> StockCorrection:
    """Apply a signed correction to a locked ``item``.

    Surpluses are received as a new batch, shortages consume batches
    FIFO. Callers provide the transaction and the row lock.
    """
    if item.current_stock + delta < 0:
        raise InsufficientStock(
            f'correction would make {item.code} negative: stock {item.current_stock}, delta {delta}'
        )
    item.current_stock += delta
    item.save(update_fields=['current_stock', 'updated_at'])
    correction = StockCorrection.objects.create(
        item=item,
        adjusted_qty=delta,
        reason=reason,
        created_by=user if user and user.is_authenticated else None,
    )
    if delta > 0:
        receive_batch(item, delta)
    else:
        consume_fifo(item, -delta)
    record_movement(
        item, StockMovement.TYPE_ADJUSTMENT, delta, reference_type,
        reference_id or correction.id, reason, user,
    )
    return correction


def correct_stock(item_id, adjusted_qty: int, *, reason: str, user: User | None = None) -> StockCorrection:
    if adjusted_qty == 0:
        raise ValidationError({'adjustedQty': 'adjusted quantity cannot be zero'})
    if not (reason or '').strip():
        raise ValidationError({'reason': 'reason is required'})
    with transaction.atomic():
        item = _lock_item(item_id)
        correction = apply_correction(
            item, adjusted_qty, reason=reason.strip(), user=user, reference_type='stock_correction',
        )
    logger.info('item %s corrected by %+d: %s', item.code, adjusted_qty, reason)
    return correction
