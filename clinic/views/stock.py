"""
Pharmacy stock endpoints: items, batches, movements, adjustments,
corrections and stock opname.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import HasFeature, HasFeatureByMethod
from clinic.serializers.stock import (
    AdjustSerializer,
    CorrectionSerializer,
    ItemListQuerySerializer,
    ItemSerializer,
    ItemWriteSerializer,
    MovementQuerySerializer,
    OpnameItemWriteSerializer,
    OpnameStartSerializer,
    StockBatchSerializer,
    StockCorrectionSerializer,
    StockMovementSerializer,
    StockOpnameItemSerializer,
    StockOpnameSerializer,
)
from clinic.services import opname as opname_service
from clinic.services import stock as stock_service

READ_FEATURES = ('stock:read', 'stock:manage')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasFeatureByMethod(READ_FEATURES, ('stock:manage',))])
def items(request):
    if request.method == 'GET':
        q = ItemListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = stock_service.list_items(
            category=q.validated_data.get('category') or None,
            search=q.validated_data.get('search') or None,
            low_stock=q.validated_data.get('lowStock', False),
        )
        return Response({'ok': True, 'data': ItemSerializer(qs, many=True).data})

    s = ItemWriteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    item = stock_service.create_item(user=request.user, **s.to_model_fields())
    return Response({'ok': True, 'data': ItemSerializer(item).data}, status=201)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasFeatureByMethod(READ_FEATURES, ('stock:manage',))])
def item_detail(request, pk):
    item = stock_service.get_item(pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': ItemSerializer(item).data})
    if request.method == 'DELETE':
        stock_service.delete_item(item)
        return Response({'ok': True, 'data': None})

    s = ItemWriteSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    item = stock_service.update_item(item, **s.to_model_fields())
    return Response({'ok': True, 'data': ItemSerializer(item).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasFeature(*READ_FEATURES)])
def low_stock(request):
    return Response({'ok': True, 'data': ItemSerializer(stock_service.low_stock_items(), many=True).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasFeature(*READ_FEATURES)])
def item_batches(request, pk):
    item = stock_service.get_item(pk)
    return Response({'ok': True, 'data': StockBatchSerializer(stock_service.batches_for(item), many=True).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasFeature(*READ_FEATURES)])
def movements(request):
    q = MovementQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    rows = stock_service.list_movements(q.validated_data.get('itemId'), limit=q.validated_data['limit'])
    return Response({'ok': True, 'data': StockMovementSerializer(rows, many=True).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasFeature(*READ_FEATURES)])
def corrections(request):
    q = MovementQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    rows = stock_service.list_corrections(q.validated_data.get('itemId'))
    return Response({'ok': True, 'data': StockCorrectionSerializer(rows, many=True).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasFeature('stock:adjust')])
def adjust(request):
    s = AdjustSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    item = stock_service.adjust(vd['itemId'], vd['quantity'], notes=vd.get('notes', ''), user=request.user)
    return Response({'ok': True, 'data': ItemSerializer(item).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasFeature('stock:adjust_in', 'stock:adjust')])
def adjust_in(request):
    s = AdjustSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    item = stock_service.adjust_in(
        vd['itemId'], vd['quantity'], notes=vd.get('notes', ''), user=request.user, expiry_at=vd.get('expiryAt'),
    )
    return Response({'ok': True, 'data': ItemSerializer(item).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasFeature('stock:adjust_out', 'stock:adjust')])
def adjust_out(request):
    s = AdjustSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    item = stock_service.adjust_out(vd['itemId'], vd['quantity'], notes=vd.get('notes', ''), user=request.user)
    return Response({'ok': True, 'data': ItemSerializer(item).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasFeature('stock:correction')])
def correction(request):
    s = CorrectionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    row = stock_service.correct_stock(vd['itemId'], vd['adjustedQty'], reason=vd['reason'], user=request.user)
    return Response({'ok': True, 'data': StockCorrectionSerializer(row).data}, status=201)


# ---------------------------------------------------------------------
# Stock opname
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasFeatureByMethod(READ_FEATURES + ('stock:opname',), ('stock:opname',))])
def opnames(request):
    if request.method == 'GET':
        rows = opname_service.list_opnames(request.query_params.get('status') or None)
        return Response({'ok': True, 'data': StockOpnameSerializer(rows, many=True).data})

    s = OpnameStartSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    opname = opname_service.start(request.user, s.validated_data.get('notes', ''))
    return Response({'ok': True, 'data': StockOpnameSerializer(opname_service.get_opname(opname.id)).data}, status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasFeature(*READ_FEATURES, 'stock:opname')])
def opname_detail(request, pk):
    return Response({'ok': True, 'data': StockOpnameSerializer(opname_service.get_opname(pk)).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasFeature('stock:opname')])
def opname_add_item(request, pk):
    s = OpnameItemWriteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    row = opname_service.add_item(pk, vd['itemId'], vd.get('actualQty'), vd.get('notes'))
    return Response({'ok': True, 'data': StockOpnameItemSerializer(row).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasFeature('stock:opname')])
def opname_complete(request, pk):
    opname = opname_service.complete(pk, request.user)
    return Response({'ok': True, 'data': StockOpnameSerializer(opname).data})
