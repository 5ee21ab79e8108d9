"""
Document storage endpoints.

Uploads are multipart (``file`` plus metadata). Reads and downloads are
checked against the document's grants and written to the access log.
Grants are managed by admins and by holders of ``full`` access.
"""
from __future__ import annotations

import os

from django.http import FileResponse
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import DocumentAccess, DocumentFolder
from clinic.permissions import IsAdminRole
from clinic.serializers.document import (
    AccessListQuerySerializer,
    DocumentAccessLogSerializer,
    DocumentAccessSerializer,
    DocumentFolderDetailSerializer,
    DocumentFolderSerializer,
    DocumentListQuerySerializer,
    DocumentSerializer,
    DocumentUpdateSerializer,
    DocumentUploadSerializer,
    FolderQuerySerializer,
    FolderWriteSerializer,
    GrantAccessSerializer,
)
from clinic.services import documents as document_service


def _client_ip(request) -> str:
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR') or ''


def _can_manage_folder(user, folder: DocumentFolder) -> bool:
    return user.is_admin or folder.created_by_id == user.id


# ---------------------------------------------------------------------
# Folders
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def folders(request):
    if request.method == 'GET':
        q = FolderQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        rows = document_service.list_folders(q.validated_data.get('parentId'))
        return Response({'ok': True, 'data': DocumentFolderSerializer(rows, many=True).data})

    s = FolderWriteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    folder = document_service.create_folder(
        request.user,
        name=s.validated_data['name'],
        description=s.validated_data.get('description', ''),
        parent_id=s.validated_data.get('parentId'),
    )
    return Response({'ok': True, 'data': DocumentFolderSerializer(folder).data}, status=201)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def folder_detail(request, pk):
    folder = document_service.get_folder(pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': DocumentFolderDetailSerializer(folder).data})
    if not _can_manage_folder(request.user, folder):
        raise PermissionDenied('only the folder owner can change it')
    if request.method == 'DELETE':
        document_service.delete_folder(folder)
        return Response({'ok': True, 'data': None})

    s = FolderWriteSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    fields = {}
    if 'name' in s.validated_data:
        fields['name'] = s.validated_data['name']
    if 'description' in s.validated_data:
        fields['description'] = s.validated_data['description']
    if s.validated_data.get('parentId'):
        fields['parent_id'] = s.validated_data['parentId']
    folder = document_service.update_folder(folder, **fields)
    return Response({'ok': True, 'data': DocumentFolderSerializer(folder).data})


# ---------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def documents(request):
    if request.method == 'GET':
        q = DocumentListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        rows = document_service.visible_documents(
            request.user,
            category=q.validated_data.get('category') or None,
            patient_id=q.validated_data.get('patientId'),
            folder_id=q.validated_data.get('folderId'),
        )
        return Response({'ok': True, 'data': DocumentSerializer(rows, many=True).data})

    s = DocumentUploadSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    upload = vd['file']
    document = document_service.upload_document(
        request.user,
        upload,
        title=vd.get('title') or os.path.splitext(upload.name)[0],
        description=vd.get('description', ''),
        category=vd.get('category', ''),
        patient_id=vd.get('patientId'),
        folder_id=vd.get('folderId'),
        is_confidential=vd.get('isConfidential', False),
    )
    return Response({'ok': True, 'data': DocumentSerializer(document).data}, status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def document_categories(request):
    return Response({'ok': True, 'data': document_service.categories()})


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def document_detail(request, pk):
    document = document_service.get_document(pk)
    if request.method == 'GET':
        document_service.require_access(document, request.user, DocumentAccess.ACCESS_VIEW)
        document_service.log_access(document, request.user, 'view', _client_ip(request))
        return Response({'ok': True, 'data': DocumentSerializer(document).data})
    if request.method == 'DELETE':
        document_service.delete_document(document, request.user)
        return Response({'ok': True, 'data': None})

    s = DocumentUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    document = document_service.update_document(document, request.user, **s.to_model_fields())
    document_service.log_access(document, request.user, 'edit', _client_ip(request))
    return Response({'ok': True, 'data': DocumentSerializer(document).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def document_download(request, pk):
    document = document_service.get_document(pk)
    document_service.require_access(document, request.user, DocumentAccess.ACCESS_VIEW)
    document_service.log_access(document, request.user, 'download', _client_ip(request))
    return FileResponse(
        document.file.open('rb'),
        as_attachment=True,
        filename=os.path.basename(document.file.name),
        content_type=document.file_type or 'application/octet-stream',
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def document_logs(request, pk):
    document_service.get_document(pk)
    rows = document_service.access_logs(pk)
    return Response({'ok': True, 'data': DocumentAccessLogSerializer(rows, many=True).data})


# ---------------------------------------------------------------------
# Access grants
# ---------------------------------------------------------------------
def _require_grant_rights(user, *, document_id=None, folder_id=None) -> None:
    if user.is_admin:
        return
    if document_id:
        document = document_service.get_document(document_id)
        document_service.require_access(document, user, DocumentAccess.ACCESS_FULL)
    if folder_id and not _can_manage_folder(user, document_service.get_folder(folder_id)):
        raise PermissionDenied('only the folder owner can share it')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def document_access(request):
    if request.method == 'GET':
        q = AccessListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        document_id, folder_id = q.validated_data.get('documentId'), q.validated_data.get('folderId')
        _require_grant_rights(request.user, document_id=document_id, folder_id=folder_id)
        rows = document_service.access_list(document_id=document_id, folder_id=folder_id)
        return Response({'ok': True, 'data': DocumentAccessSerializer(rows, many=True).data})

    s = GrantAccessSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    _require_grant_rights(request.user, document_id=vd.get('documentId'), folder_id=vd.get('folderId'))
    grant = document_service.grant_access(
        request.user,
        criteria=vd['criteria'],
        access_type=vd['accessType'],
        document_id=vd.get('documentId'),
        folder_id=vd.get('folderId'),
        target_id=s.target_id(),
        expires_at=vd.get('expiresAt'),
    )
    return Response({'ok': True, 'data': DocumentAccessSerializer(grant).data}, status=201)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def document_access_detail(request, pk):
    grant = DocumentAccess.objects.filter(id=pk).first()
    if grant is not None:
        _require_grant_rights(request.user, document_id=grant.document_id, folder_id=grant.folder_id)
    document_service.revoke_access(pk)
    return Response({'ok': True, 'data': None})
