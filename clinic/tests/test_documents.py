from datetime import timedelta

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone

from clinic.models import DocumentAccess, DocumentAccessLog, DocumentFolder, Role
from clinic.services import documents as document_service

pytestmark = pytest.mark.django_db


@pytest.fixture(autouse=True)
def _media_root(settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path


def _pdf(name='hasil-lab.pdf'):
    return SimpleUploadedFile(name, b'%PDF-1.4 test', content_type='application/pdf')


@pytest.fixture
def owner(make_user):
    return make_user('uploader', Role.REGISTRATION_STAFF)


@pytest.fixture
def nurse(make_user):
    return make_user('nurse1', Role.NURSE)


@pytest.fixture
def secret(owner):
    return document_service.upload_document(owner, _pdf(), title='Hasil Lab', is_confidential=True)


def test_public_documents_are_viewable_but_not_editable(owner, nurse):
    doc = document_service.upload_document(owner, _pdf(), title='Brosur')
    assert document_service.check_access(doc, nurse, DocumentAccess.ACCESS_VIEW)
    assert not document_service.check_access(doc, nurse, DocumentAccess.ACCESS_EDIT)
    assert document_service.check_access(doc, owner, DocumentAccess.ACCESS_FULL)


def test_confidential_needs_matching_grant(owner, nurse, roles, secret):
    assert not document_service.check_access(secret, nurse)

    document_service.grant_access(
        owner, criteria=DocumentAccess.CRITERIA_ROLE, document_id=secret.id, target_id=roles[Role.NURSE].id,
    )
    assert document_service.check_access(secret, nurse)
    assert not document_service.check_access(secret, nurse, DocumentAccess.ACCESS_DELETE)


def test_regranting_updates_level_and_expired_grants_do_not_count(owner, nurse, secret):
    document_service.grant_access(owner, criteria='user', document_id=secret.id, target_id=nurse.id)
    grant = document_service.grant_access(
        owner, criteria='user', document_id=secret.id, target_id=nurse.id,
        access_type=DocumentAccess.ACCESS_EDIT, expires_at=timezone.now() - timedelta(minutes=1),
    )
    assert DocumentAccess.objects.filter(document=secret).count() == 1
    assert grant.access_type == DocumentAccess.ACCESS_EDIT
    assert not document_service.check_access(secret, nurse)


def test_folder_grant_reaches_documents_inside(owner, nurse):
    folder = document_service.create_folder(owner, name='Rekam Medis')
    doc = document_service.upload_document(owner, _pdf(), title='Rontgen', folder_id=folder.id, is_confidential=True)
    assert doc not in document_service.visible_documents(nurse)

    document_service.grant_access(owner, criteria='user', folder_id=folder.id, target_id=nurse.id)
    assert document_service.check_access(doc, nurse)
    assert doc in document_service.visible_documents(nurse)


def test_doctor_and_polyclinic_criteria(owner, doctor, secret):
    assert not document_service.check_access(secret, doctor.user)
    document_service.grant_access(owner, criteria='polyclinic', document_id=secret.id, target_id=doctor.polyclinic_id)
    assert document_service.check_access(secret, doctor.user)


def test_grant_requires_a_target(owner, secret):
    from rest_framework.exceptions import ValidationError

    with pytest.raises(ValidationError):
        document_service.grant_access(owner, criteria='user', document_id=secret.id)
    with pytest.raises(ValidationError):
        document_service.grant_access(owner, criteria='user', target_id=owner.id)


def test_api_view_is_logged_and_denied_without_access(client_for, owner, nurse, secret):
    assert client_for(nurse).get(f'/api/documents/{secret.id}').status_code == 403

    resp = client_for(owner).get(f'/api/documents/{secret.id}')
    assert resp.status_code == 200
    assert resp.data['data']['isConfidential'] is True
    assert DocumentAccessLog.objects.filter(document=secret, user=owner, action='view').exists()


def test_api_upload_and_listing(client_for, owner, nurse):
    resp = client_for(owner).post(
        '/api/documents',
        {'file': _pdf('surat.pdf'), 'category': 'surat', 'isConfidential': 'true'},
        format='multipart',
    )
    assert resp.status_code == 201
    assert resp.data['data']['title'] == 'surat'

    assert client_for(nurse).get('/api/documents').data['data'] == []
    assert len(client_for(owner).get('/api/documents').data['data']) == 1
    assert client_for(owner).get('/api/documents/categories').data['data'] == ['surat']


def test_api_rejects_unsupported_type(client_for, owner):
    upload = SimpleUploadedFile('run.sh', b'echo hi', content_type='text/x-sh')
    resp = client_for(owner).post('/api/documents', {'file': upload}, format='multipart')
    assert resp.status_code == 400


def test_api_only_full_access_can_share(client_for, owner, nurse, secret, make_user):
    stranger = make_user('stranger', Role.STAFF)
    payload = {'documentId': str(secret.id), 'criteria': 'user', 'userId': stranger.id}

    assert client_for(nurse).post('/api/documents/access', payload, format='json').status_code == 403

    resp = client_for(owner).post('/api/documents/access', {**payload, 'accessType': 'full'}, format='json')
    assert resp.status_code == 201
    grant_id = resp.data['data']['id']

    listing = client_for(stranger).get('/api/documents/access', {'documentId': str(secret.id)})
    assert listing.status_code == 200
    assert [row['id'] for row in listing.data['data']] == [grant_id]

    assert client_for(owner).delete(f'/api/documents/access/{grant_id}').status_code == 200
    assert not DocumentAccess.objects.exists()


def test_only_folder_owner_changes_folder(client_for, owner, nurse):
    folder = DocumentFolder.objects.create(name='Arsip', created_by=owner)
    assert client_for(nurse).patch(f'/api/documents/folders/{folder.id}', {'name': 'X'}, format='json').status_code == 403

    resp = client_for(owner).patch(f'/api/documents/folders/{folder.id}', {'name': 'Arsip 2024'}, format='json')
    assert resp.status_code == 200
    assert resp.data['data']['name'] == 'Arsip 2024'


def test_uploaded_files_are_not_served_from_media_url(settings, client_for, secret):
    settings.DEBUG = True
    assert secret.file.name.startswith('documents/')
    resp = client_for().get(f'{settings.MEDIA_URL}{secret.file.name}')
    assert resp.status_code == 404
    assert not DocumentAccessLog.objects.filter(document=secret).exists()
