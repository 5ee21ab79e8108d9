"""
Stock tests: FIFO batch consumption, adjustments, corrections and the
stock opname reconciliation.
"""
from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from clinic.exceptions import Conflict, InsufficientStock
from clinic.models import Item, StockBatch, StockCorrection, StockMovement, StockOpname, Role
from clinic.services import opname as opname_service
from clinic.services import stock

pytestmark = pytest.mark.django_db


def _batches(item):
    return list(StockBatch.objects.filter(item=item).order_by('received_at').values_list('quantity', flat=True))


def test_opening_stock_becomes_first_batch():
    item = stock.create_item(code='OBT-010', name='Vitamin C', category='obat', unit='tablet', current_stock=40)
    assert item.current_stock == 40
    assert _batches(item) == [40]
    movement = StockMovement.objects.get(item=item)
    assert (movement.movement_type, movement.reference_type, movement.quantity) == ('in', 'opening_stock', 40)


def test_duplicate_code_conflicts(item):
    with pytest.raises(Conflict):
        stock.create_item(code=item.code, name='Other', category='obat', unit='tablet')


def test_adjust_out_consumes_oldest_batches_first(item):
    now = timezone.now()
    stock.receive_batch(item, 5, received_at=now - timedelta(days=3))
    stock.receive_batch(item, 10, received_at=now - timedelta(days=1))
    Item.objects.filter(id=item.id).update(current_stock=15)

    stock.adjust_out(item.id, 8, notes='rusak')

    item.refresh_from_db()
    assert item.current_stock == 7
    assert _batches(item) == [0, 7]
    out = StockMovement.objects.get(item=item, movement_type='out')
    assert out.quantity == 8 and out.notes == 'rusak'


def test_adjust_out_beyond_stock_changes_nothing(item):
    stock.adjust_in(item.id, 3)
    with pytest.raises(InsufficientStock):
        stock.adjust_out(item.id, 4)
    item.refresh_from_db()
    assert item.current_stock == 3
    assert _batches(item) == [3]


def test_adjust_out_rolls_back_when_batches_fall_short(item):
    stock.receive_batch(item, 3)
    Item.objects.filter(id=item.id).update(current_stock=10)

    with pytest.raises(InsufficientStock):
        stock.adjust_out(item.id, 5)

    item.refresh_from_db()
    assert item.current_stock == 10
    assert _batches(item) == [3]
    assert not StockMovement.objects.filter(item=item, movement_type='out').exists()


def test_signed_adjust_dispatches_and_rejects_zero(item):
    stock.adjust(item.id, 12)
    stock.adjust(item.id, -2)
    item.refresh_from_db()
    assert item.current_stock == 10
    with pytest.raises(ValidationError):
        stock.adjust(item.id, 0)


def test_correction_requires_reason_and_keeps_batches_in_line(item):
    stock.adjust_in(item.id, 10)
    with pytest.raises(ValidationError):
        stock.correct_stock(item.id, -2, reason='  ')

    stock.correct_stock(item.id, -4, reason='kadaluarsa')
    stock.correct_stock(item.id, 1, reason='salah hitung')

    item.refresh_from_db()
    assert item.current_stock == 7
    assert sum(_batches(item)) == 7
    assert list(StockCorrection.objects.filter(item=item).order_by('created_at').values_list('adjusted_qty', flat=True)) == [-4, 1]


def test_correction_cannot_go_negative(item):
    stock.adjust_in(item.id, 2)
    with pytest.raises(InsufficientStock):
        stock.correct_stock(item.id, -3, reason='hilang')


def test_opname_reconciles_counted_items(admin_user, item):
    stock.adjust_in(item.id, 20)
    other = stock.create_item(code='OBT-020', name='Antasida', category='obat', unit='tablet', current_stock=5)

    opname = opname_service.start(admin_user, 'bulanan')
    assert opname.status == StockOpname.STATUS_DRAFT
    row = opname_service.add_item(opname.id, item.id, actual_qty=17)
    assert row.system_qty == 20 and row.difference == -3
    opname_service.add_item(opname.id, other.id)  # not counted, ignored

    done = opname_service.complete(opname.id, admin_user)

    assert done.status == StockOpname.STATUS_COMPLETED and done.completed_at
    item.refresh_from_db()
    other.refresh_from_db()
    assert item.current_stock == 17
    assert other.current_stock == 5
    correction = StockCorrection.objects.get(item=item)
    assert correction.adjusted_qty == -3
    assert StockMovement.objects.filter(item=item, reference_type='stock_opname').exists()

    with pytest.raises(Conflict):
        opname_service.add_item(opname.id, item.id, actual_qty=1)
    with pytest.raises(Conflict):
        opname_service.complete(opname.id, admin_user)


def test_opname_without_counts_cannot_complete(admin_user, item):
    opname = opname_service.start(admin_user)
    with pytest.raises(ValidationError):
        opname_service.complete(opname.id, admin_user)


def test_opname_skips_rows_that_matched_the_count(admin_user, item):
    stock.adjust_in(item.id, 20)
    opname = opname_service.start(admin_user)
    row = opname_service.add_item(opname.id, item.id, actual_qty=20)
    assert row.difference == 0
    stock.adjust_out(item.id, 5, notes='dispensed after counting')

    opname_service.complete(opname.id, admin_user)

    item.refresh_from_db()
    assert item.current_stock == 15
    assert _batches(item) == [15]
    assert not StockCorrection.objects.filter(item=item).exists()


def test_opname_surplus_is_received_as_new_batch(admin_user, item):
    stock.adjust_in(item.id, 10)
    opname = opname_service.start(admin_user)
    opname_service.add_item(opname.id, item.id, actual_qty=14)

    opname_service.complete(opname.id, admin_user)

    item.refresh_from_db()
    assert item.current_stock == 14
    assert _batches(item) == [10, 4]
    assert StockCorrection.objects.get(item=item).adjusted_qty == 4


def test_stock_endpoints_respect_features(make_user, client_for, item):
    inventory = make_user('gudang1', Role.INVENTORY_STAFF)
    patient = make_user('pasien9', Role.PATIENT)

    resp = client_for(inventory).post('/api/stock/adjust-in', {'itemId': str(item.id), 'quantity': 25}, format='json')
    assert resp.status_code == 200
    assert resp.data['data']['currentStock'] == 25

    resp = client_for(inventory).post('/api/stock/adjust-out', {'itemId': str(item.id), 'quantity': 30}, format='json')
    assert resp.status_code == 409
    assert resp.data['error']['code'] == 'insufficient_stock'

    assert client_for(patient).get('/api/stock/items').status_code == 403
    assert client_for().get('/api/stock/items').status_code == 401


def test_item_listing_and_low_stock(make_user, client_for, item):
    pharmacist = make_user('apoteker2', Role.PHARMACIST)
    client = client_for(pharmacist)

    resp = client.get('/api/stock/items', {'lowStock': 'true'})
    assert resp.status_code == 200
    assert [row['code'] for row in resp.data['data']] == [item.code]
    assert resp.data['data'][0]['isLowStock'] is True

    assert client.get('/api/stock/movements', {'itemId': 'not-a-uuid'}).status_code == 400
