"""
Document storage with access grants.

Access rules, in order:

* admins and the uploader have full access;
* non-confidential documents are viewable by everyone signed in;
* otherwise an unexpired grant on the document (or on its folder) must
  match the user, the user's role, the doctor's polyclinic or the
  doctor, at a level at least as high as the one required
  (``view < edit < delete < full``).

Folder grants used by the listing query only consider user and role
criteria.
"""
from __future__ import annotations

import logging

from django.conf import settings
from django.db.models import Exists, OuterRef, Q
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from clinic.models import (
    Doctor,
    Document,
    DocumentAccess,
    DocumentAccessLog,
    DocumentFolder,
    Patient,
    Polyclinic,
    Role,
    User,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Folders
# ---------------------------------------------------------------------
def create_folder(user: User, *, name: str, description: str = '', parent_id=None) -> DocumentFolder:
    parent = None
    if parent_id:
        parent = DocumentFolder.objects.filter(id=parent_id).first()
        if not parent:
            raise NotFound('parent folder not found')
    return DocumentFolder.objects.create(name=name, description=description or '', parent=parent, created_by=user)


def list_folders(parent_id=None):
    qs = DocumentFolder.objects.select_related('created_by')
    if parent_id:
        qs = qs.filter(parent_id=parent_id)
    else:
        qs = qs.filter(parent__isnull=True)
    return qs.order_by('name')


def get_folder(folder_id) -> DocumentFolder:
    folder = (
        DocumentFolder.objects.select_related('created_by', 'parent')
        .prefetch_related('children', 'documents')
        .filter(id=folder_id)
        .first()
    )
    if not folder:
        raise NotFound('folder not found')
    return folder


def update_folder(folder: DocumentFolder, **fields) -> DocumentFolder:
    parent_id = fields.pop('parent_id', None)
    if parent_id:
        if str(parent_id) == str(folder.id):
            raise ValidationError({'parentId': 'a folder cannot be its own parent'})
        folder.parent = DocumentFolder.objects.filter(id=parent_id).first()
        if folder.parent is None:
            raise NotFound('parent folder not found')
    for key, value in fields.items():
        setattr(folder, key, value)
    folder.save()
    return folder


def delete_folder(folder: DocumentFolder) -> None:
    logger.info('folder %s deleted', folder.id)
    folder.delete()


# ---------------------------------------------------------------------
# Access evaluation
# ---------------------------------------------------------------------
def _doctor_for(user: User) -> Doctor | None:
    return Doctor.objects.filter(user=user).first()


def _live_grants():
    now = timezone.now()
    return DocumentAccess.objects.filter(Q(expires_at__isnull=True) | Q(expires_at__gt=now))


def _criteria_match(user: User, doctor: Doctor | None) -> Q:
    match = Q(criteria=DocumentAccess.CRITERIA_USER, user=user)
    if user.role_id:
        match |= Q(criteria=DocumentAccess.CRITERIA_ROLE, role_id=user.role_id)
    if doctor is not None:
        match |= Q(criteria=DocumentAccess.CRITERIA_DOCTOR, doctor=doctor)
        if doctor.polyclinic_id:
            match |= Q(criteria=DocumentAccess.CRITERIA_POLYCLINIC, polyclinic_id=doctor.polyclinic_id)
    return match


def check_access(document: Document, user: User, required: str = DocumentAccess.ACCESS_VIEW) -> bool:
    if user.is_admin:
        return True
    if document.uploaded_by_id == user.id:
        return True
    if not document.is_confidential and required == DocumentAccess.ACCESS_VIEW:
        return True

    target = Q(document=document)
    if document.folder_id:
        target |= Q(folder_id=document.folder_id)
    grants = _live_grants().filter(target).filter(_criteria_match(user, _doctor_for(user)))
    needed = DocumentAccess.LEVELS[required]
    return any(DocumentAccess.LEVELS.get(g.access_type, 0) >= needed for g in grants)


def require_access(document: Document, user: User, required: str) -> None:
    if not check_access(document, user, required):
        logger.warning('user %s denied %s on document %s', user.id, required, document.id)
        raise PermissionDenied('access denied')


def visible_documents(user: User, *, category: str | None = None, patient_id=None, folder_id=None):
    qs = Document.objects.select_related('uploaded_by', 'patient', 'folder')
    if not user.is_admin:
        doctor = _doctor_for(user)
        live = _live_grants()
        direct = live.filter(document=OuterRef('pk')).filter(_criteria_match(user, doctor))
        folder_match = Q(criteria=DocumentAccess.CRITERIA_USER, user=user)
        if user.role_id:
            folder_match |= Q(criteria=DocumentAccess.CRITERIA_ROLE, role_id=user.role_id)
        via_folder = live.filter(folder=OuterRef('folder_id')).filter(folder_match)
        qs = qs.filter(
            Q(uploaded_by=user)
            | Q(is_confidential=False)
            | Exists(direct)
            | (Q(folder__isnull=False) & Exists(via_folder))
        )
    if category:
        qs = qs.filter(category=category)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if folder_id:
        qs = qs.filter(folder_id=folder_id)
    return qs.order_by('-created_at')


# ---------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------
def validate_upload(upload) -> None:
    size_mb = (upload.size or 0) / (1024 * 1024)
    if size_mb > settings.UPLOAD_MAX_MB:
        raise ValidationError({'file': f'file exceeds {settings.UPLOAD_MAX_MB} MB'})
    ctype = getattr(upload, 'content_type', '') or ''
    if not any(ctype.startswith(prefix) for prefix in settings.ALLOWED_UPLOAD_TYPES):
        raise ValidationError({'file': 'unsupported file type'})


def upload_document(
    user: User,
    upload,
    *,
    title: str,
    description: str = '',
    category: str = '',
    patient_id=None,
    folder_id=None,
    is_confidential: bool = False,
) -> Document:
    validate_upload(upload)
    patient = folder = None
    if patient_id:
        patient = Patient.objects.filter(id=patient_id).first()
        if not patient:
            raise NotFound('patient not found')
    if folder_id:
        folder = DocumentFolder.objects.filter(id=folder_id).first()
        if not folder:
            raise NotFound('folder not found')
    document = Document.objects.create(
        title=title,
        description=description or '',
        file=upload,
        file_type=getattr(upload, 'content_type', '') or '',
        file_size=upload.size or 0,
        category=category or '',
        patient=patient,
        folder=folder,
        uploaded_by=user,
        is_confidential=is_confidential,
    )
    logger.info('document %s uploaded by %s', document.id, user.id)
    return document


def get_document(document_id) -> Document:
    document = (
        Document.objects.select_related('uploaded_by', 'patient', 'folder')
        .prefetch_related('access_grants')
        .filter(id=document_id)
        .first()
    )
    if not document:
        raise NotFound('document not found')
    return document


def update_document(document: Document, user: User, **fields) -> Document:
    require_access(document, user, DocumentAccess.ACCESS_EDIT)
    folder_id = fields.pop('folder_id', None)
    if folder_id:
        document.folder = DocumentFolder.objects.filter(id=folder_id).first()
        if document.folder is None:
            raise NotFound('folder not found')
    patient_id = fields.pop('patient_id', None)
    if patient_id:
        document.patient = Patient.objects.filter(id=patient_id).first()
        if document.patient is None:
            raise NotFound('patient not found')
    for key, value in fields.items():
        setattr(document, key, value)
    document.save()
    return document


def delete_document(document: Document, user: User) -> None:
    require_access(document, user, DocumentAccess.ACCESS_DELETE)
    storage, name = document.file.storage, document.file.name
    document.delete()
    if name and storage.exists(name):
        storage.delete(name)
    logger.info('document %s deleted by %s', name, user.id)


def categories() -> list[str]:
    return list(
        Document.objects.exclude(category='')
        .order_by('category')
        .values_list('category', flat=True)
        .distinct()
    )


def log_access(document: Document, user: User | None, action: str, ip_address: str | None = None) -> None:
    DocumentAccessLog.objects.create(
        document=document,
        user=user if user and user.is_authenticated else None,
        action=action,
        ip_address=ip_address or '',
    )


def access_logs(document_id):
    return DocumentAccessLog.objects.filter(document_id=document_id).select_related('user').order_by('-created_at')


# ---------------------------------------------------------------------
# Grants
# ---------------------------------------------------------------------
_CRITERIA_TARGET = {
    DocumentAccess.CRITERIA_USER: ('user_id', User),
    DocumentAccess.CRITERIA_ROLE: ('role_id', Role),
    DocumentAccess.CRITERIA_POLYCLINIC: ('polyclinic_id', Polyclinic),
    DocumentAccess.CRITERIA_DOCTOR: ('doctor_id', Doctor),
}


def grant_access(
    granted_by: User,
    *,
    criteria: str,
    access_type: str = DocumentAccess.ACCESS_VIEW,
    document_id=None,
    folder_id=None,
    target_id=None,
    expires_at=None,
) -> DocumentAccess:
    """Create or update the grant for one criterion target on a document or folder."""
    if not document_id and not folder_id:
        raise ValidationError({'detail': 'either documentId or folderId must be provided'})
    if criteria not in _CRITERIA_TARGET:
        raise ValidationError({'criteria': 'unknown access criteria'})
    field, model = _CRITERIA_TARGET[criteria]
    if not target_id:
        raise ValidationError({'detail': f"{field.replace('_id', 'Id')} is required for {criteria}-based access"})
    if not model.objects.filter(pk=target_id).exists():
        raise NotFound(f'{criteria} not found')
    if document_id and not Document.objects.filter(id=document_id).exists():
        raise NotFound('document not found')
    if folder_id and not DocumentFolder.objects.filter(id=folder_id).exists():
        raise NotFound('folder not found')

    lookup = {'criteria': criteria, 'document_id': document_id, 'folder_id': folder_id, field: target_id}
    grant = DocumentAccess.objects.filter(**lookup).first()
    if grant:
        grant.access_type = access_type
        grant.expires_at = expires_at
        grant.save(update_fields=['access_type', 'expires_at'])
    else:
        grant = DocumentAccess.objects.create(
            access_type=access_type, expires_at=expires_at, granted_by=granted_by, **lookup
        )
    logger.info('%s access (%s=%s) granted on document=%s folder=%s',
                access_type, criteria, target_id, document_id, folder_id)
    return grant


def revoke_access(grant_id) -> None:
    deleted, _ = DocumentAccess.objects.filter(id=grant_id).delete()
    if not deleted:
        raise NotFound('access not found')


def access_list(*, document_id=None, folder_id=None):
    qs = DocumentAccess.objects.select_related('user', 'role', 'polyclinic', 'doctor__user', 'granted_by')
    if document_id:
        qs = qs.filter(document_id=document_id)
    if folder_id:
        qs = qs.filter(folder_id=folder_id)
    return qs.order_by('-created_at')
