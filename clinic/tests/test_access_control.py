import pytest
from rest_framework.exceptions import NotFound, ValidationError

from clinic.models import AccessControl, Role
from clinic.services import access_control

pytestmark = pytest.mark.django_db


def test_admin_passes_every_check(admin_user):
    assert access_control.has_access(admin_user, 'anything:at-all')


def test_role_and_user_grants(make_user, roles):
    staff = make_user('staf1', Role.STAFF)
    assert access_control.has_access(staff, 'queue:read')
    assert not access_control.has_access(staff, 'stock:read')

    access_control.set_permission(feature='stock:read', allowed=True, user_id=staff.id)
    assert access_control.has_access(staff, 'stock:read')

    access_control.set_permission(feature='queue:read', allowed=False, role_id=roles[Role.STAFF].id)
    assert not access_control.has_access(staff, 'queue:read')
    assert access_control.features_for(staff) == ['patient:read', 'stock:read']


def test_grant_is_idempotent_and_revoke_of_missing_is_noop(roles):
    role_id = roles[Role.NURSE].id
    first = access_control.set_permission(feature='stock:read', allowed=True, role_id=role_id)
    second = access_control.set_permission(feature='stock:read', allowed=True, role_id=role_id)
    assert first.id == second.id
    assert access_control.set_permission(feature='never:granted', allowed=False, role_id=role_id) is None


def test_set_permission_needs_exactly_one_subject(roles, admin_user):
    with pytest.raises(ValidationError):
        access_control.set_permission(feature='stock:read', allowed=True)
    with pytest.raises(ValidationError):
        access_control.set_permission(
            feature='stock:read', allowed=True, role_id=roles[Role.STAFF].id, user_id=admin_user.id,
        )
    with pytest.raises(NotFound):
        access_control.set_permission(feature='stock:read', allowed=True, user_id=987654)


def test_anonymous_has_nothing():
    from django.contrib.auth.models import AnonymousUser

    assert not access_control.has_access(AnonymousUser(), 'queue:read')


def test_admin_matrix_endpoints(client_for, admin_user, make_user, roles):
    nurse = make_user('nurse1', Role.NURSE)
    assert client_for(nurse).get('/api/admin/access-controls').status_code == 403

    client = client_for(admin_user)
    resp = client.post('/api/admin/access-controls', {
        'roleId': str(roles[Role.NURSE].id), 'feature': 'stock:read',
    }, format='json')
    assert resp.status_code == 200
    entry = resp.data['data']
    assert entry['roleName'] == Role.NURSE and entry['userId'] is None
    assert client_for(nurse).get('/api/access-controls/check', {'feature': 'stock:read'}).data['data']['allowed']

    assert client.delete(f"/api/admin/access-controls/{entry['id']}").status_code == 200
    assert not AccessControl.objects.filter(id=entry['id']).exists()
    assert client.delete(f"/api/admin/access-controls/{entry['id']}").status_code == 404

    resp = client.post('/api/admin/access-controls', {'feature': 'stock:read'}, format='json')
    assert resp.status_code == 400


def test_check_requires_feature(client_for, make_user):
    staff = make_user('staf2', Role.STAFF)
    assert client_for(staff).get('/api/access-controls/check').status_code == 400
    resp = client_for(staff).get('/api/access-controls/check', {'feature': 'queue:read'})
    assert resp.data['data'] == {'feature': 'queue:read', 'allowed': True}


def test_role_endpoints(client_for, admin_user, make_user):
    client = client_for(admin_user)
    assert client_for(make_user('staf3', Role.STAFF)).get('/api/roles').status_code == 403

    assert client.post('/api/roles', {'description': 'tanpa nama'}, format='json').status_code == 400
    resp = client.post('/api/roles', {'name': 'radiographer', 'description': 'Radiologi'}, format='json')
    assert resp.status_code == 201
    role_id = resp.data['data']['id']
    assert client.post('/api/roles', {'name': 'radiographer'}, format='json').status_code == 409

    resp = client.patch(f'/api/roles/{role_id}', {'description': 'Unit Radiologi'}, format='json')
    assert resp.data['data']['description'] == 'Unit Radiologi'
    assert client.delete(f'/api/roles/{role_id}').status_code == 200
    assert not Role.objects.filter(name='radiographer').exists()

    admin_role = Role.objects.get(name=Role.ADMIN)
    assert client.delete(f'/api/roles/{admin_role.id}').status_code == 409


def test_user_management(client_for, admin_user, make_user):
    client = client_for(admin_user)
    staff = make_user('staf4', Role.STAFF)
    assert client_for(staff).get('/api/users').status_code == 403

    resp = client.post('/api/users', {
        'email': 'gudang@mediku.test', 'password': 'Sehat#Mediku2024', 'name': 'Petugas Gudang',
        'role': Role.INVENTORY_STAFF, 'staffData': {'department': 'Gudang', 'position': 'Kepala'},
    }, format='json')
    assert resp.status_code == 201
    assert resp.data['data']['staff']['department'] == 'Gudang'

    listing = client.get('/api/users', {'role': Role.INVENTORY_STAFF})
    assert listing.data['meta']['total'] == 1
    assert listing.data['data'][0]['email'] == 'gudang@mediku.test'

    resp = client.patch(f'/api/users/{staff.id}/role', {'role': Role.NURSE}, format='json')
    assert resp.status_code == 200
    assert resp.data['data']['role'] == Role.NURSE
    assert client.patch(f'/api/users/{staff.id}/role', {'role': 'wizard'}, format='json').status_code == 404
