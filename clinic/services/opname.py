"""
Stock opname: a physical count reconciled against recorded stock.

An opname starts as ``draft``, becomes ``in_progress`` once the first
count is recorded, and is closed by ``complete`` which turns every
counted difference into a stock correction.
"""
from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic.exceptions import Conflict
from clinic.models import Item, StockOpname, StockOpnameItem, User
from clinic.services.stock import apply_correction

logger = logging.getLogger(__name__)


def start(user: User | None, notes: str = '') -> StockOpname:
    opname = StockOpname.objects.create(
        opname_date=timezone.localdate(),
        status=StockOpname.STATUS_DRAFT,
        notes=notes or '',
        created_by=user if user and user.is_authenticated else None,
    )
    logger.info('stock opname %s started', opname.id)
    return opname


def list_opnames(status: str | None = None):
    qs = StockOpname.objects.select_related('created_by').prefetch_related('items__item')
    if status:
        qs = qs.filter(status=status)
    return qs.order_by('-created_at')


def get_opname(opname_id) -> StockOpname:
    opname = (
        StockOpname.objects.select_related('created_by')
        .prefetch_related('items__item')
        .filter(id=opname_id)
        .first()
    )
    if not opname:
        raise NotFound('stock opname not found')
    return opname


@transaction.atomic
def add_item(opname_id, item_id, actual_qty: int | None = None, notes: str | None = None) -> StockOpnameItem:
    """Record (or re-record) the counted quantity of an item.

    The system quantity is snapshotted when the item is first added.
    """
    opname = StockOpname.objects.select_for_update().filter(id=opname_id).first()
    if not opname:
        raise NotFound('stock opname not found')
    if opname.status == StockOpname.STATUS_COMPLETED:
        raise Conflict('cannot modify a completed opname')
    if actual_qty is not None and actual_qty < 0:
        raise ValidationError({'actualQty': 'actual quantity cannot be negative'})
    item = Item.objects.filter(id=item_id, is_active=True).first()
    if not item:
        raise NotFound('item not found')

    row = StockOpnameItem.objects.filter(opname=opname, item=item).first()
    if row:
        row.actual_qty = actual_qty
        if notes:
            row.notes = notes
        row.save(update_fields=['actual_qty', 'notes'])
    else:
        row = StockOpnameItem.objects.create(
            opname=opname,
            item=item,
            system_qty=item.current_stock,
            actual_qty=actual_qty,
            notes=notes or '',
        )

    if opname.status == StockOpname.STATUS_DRAFT:
        opname.status = StockOpname.STATUS_IN_PROGRESS
        opname.save(update_fields=['status'])
    return row


def complete(opname_id, user: User | None = None) -> StockOpname:
    """Apply all counted differences and close the opname.

    Rows without a counted quantity, or whose count matched the system
    quantity, are ignored. Every other item ends at its counted
    quantity; the correction is the delta against the live stock so
    batches stay in line with ``current_stock``.
    """
    with transaction.atomic():
        opname = StockOpname.objects.select_for_update().filter(id=opname_id).first()
        if not opname:
            raise NotFound('stock opname not found')
        if opname.status == StockOpname.STATUS_COMPLETED:
            raise Conflict('opname already completed')

        rows = list(
            StockOpnameItem.objects.filter(opname=opname, actual_qty__isnull=False)
            .order_by('item__code')
        )
        if not rows:
            raise ValidationError({'detail': 'no counted items to reconcile'})

        corrected = 0
        for row in rows:
            if row.difference == 0:
                continue
            item = Item.objects.select_for_update().get(id=row.item_id)
            delta = row.actual_qty - item.current_stock
            if delta == 0:
                continue
            apply_correction(
                item,
                delta,
                reason=f'Stock opname reconciliation (diff {row.difference})',
                user=user,
                reference_type='stock_opname',
                reference_id=opname.id,
            )
            corrected += 1

        opname.status = StockOpname.STATUS_COMPLETED
        opname.completed_at = timezone.now()
        opname.save(update_fields=['status', 'completed_at'])

    logger.info('stock opname %s completed, %s item(s) corrected', opname.id, corrected)
    return get_opname(opname.id)
