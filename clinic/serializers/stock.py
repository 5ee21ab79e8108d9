from rest_framework import serializers

from clinic.models import (
    Item,
    StockBatch,
    StockCorrection,
    StockMovement,
    StockOpname,
    StockOpnameItem,
)


class ItemSerializer(serializers.ModelSerializer):
    minStock = serializers.IntegerField(source='min_stock', read_only=True)
    currentStock = serializers.IntegerField(source='current_stock', read_only=True)
    isActive = serializers.BooleanField(source='is_active', read_only=True)
    isLowStock = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Item
        fields = [
            'id', 'code', 'name', 'category', 'unit', 'minStock', 'currentStock', 'price',
            'description', 'isActive', 'isLowStock', 'createdAt', 'updatedAt',
        ]

    def get_isLowStock(self, obj) -> bool:
        return obj.current_stock <= obj.min_stock


class ItemWriteSerializer(serializers.Serializer):
    FIELD_MAP = {
        'code': 'code',
        'name': 'name',
        'category': 'category',
        'unit': 'unit',
        'minStock': 'min_stock',
        'currentStock': 'current_stock',
        'price': 'price',
        'description': 'description',
    }

    code = serializers.CharField(max_length=50)
    name = serializers.CharField(max_length=255)
    category = serializers.CharField(max_length=100)
    unit = serializers.CharField(max_length=50)
    minStock = serializers.IntegerField(min_value=0, required=False, default=0)
    currentStock = serializers.IntegerField(min_value=0, required=False, default=0)
    price = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=0, required=False, default=0)
    description = serializers.CharField(required=False, allow_blank=True)

    def to_model_fields(self) -> dict:
        return {self.FIELD_MAP[k]: v for k, v in self.validated_data.items()}


class ItemListQuerySerializer(serializers.Serializer):
    category = serializers.CharField(required=False, allow_blank=True)
    search = serializers.CharField(required=False, allow_blank=True)
    lowStock = serializers.BooleanField(required=False, default=False)


class StockBatchSerializer(serializers.ModelSerializer):
    itemId = serializers.UUIDField(source='item_id', read_only=True)
    receivedAt = serializers.DateTimeField(source='received_at', read_only=True)
    expiryAt = serializers.DateTimeField(source='expiry_at', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = StockBatch
        fields = ['id', 'itemId', 'quantity', 'receivedAt', 'expiryAt', 'createdAt']


class StockMovementSerializer(serializers.ModelSerializer):
    item = serializers.SerializerMethodField()
    movementType = serializers.CharField(source='movement_type', read_only=True)
    referenceType = serializers.CharField(source='reference_type', read_only=True)
    referenceId = serializers.CharField(source='reference_id', read_only=True)
    createdBy = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = StockMovement
        fields = [
            'id', 'item', 'movementType', 'quantity', 'referenceType', 'referenceId', 'notes',
            'createdBy', 'createdAt',
        ]

    def get_item(self, obj):
        return {'id': str(obj.item_id), 'code': obj.item.code, 'name': obj.item.name}

    def get_createdBy(self, obj):
        return obj.created_by.email if obj.created_by_id else None


class StockCorrectionSerializer(serializers.ModelSerializer):
    item = serializers.SerializerMethodField()
    adjustedQty = serializers.IntegerField(source='adjusted_qty', read_only=True)
    createdBy = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = StockCorrection
        fields = ['id', 'item', 'adjustedQty', 'reason', 'createdBy', 'createdAt']

    def get_item(self, obj):
        return {'id': str(obj.item_id), 'code': obj.item.code, 'name': obj.item.name}

    def get_createdBy(self, obj):
        return obj.created_by.email if obj.created_by_id else None


class AdjustSerializer(serializers.Serializer):
    itemId = serializers.UUIDField()
    quantity = serializers.IntegerField()
    notes = serializers.CharField(required=False, allow_blank=True)
    expiryAt = serializers.DateTimeField(required=False, allow_null=True)


class CorrectionSerializer(serializers.Serializer):
    itemId = serializers.UUIDField()
    adjustedQty = serializers.IntegerField()
    reason = serializers.CharField(max_length=255)


# ---------------------------------------------------------------------
# Stock opname
# ---------------------------------------------------------------------
class StockOpnameItemSerializer(serializers.ModelSerializer):
    item = serializers.SerializerMethodField()
    systemQty = serializers.IntegerField(source='system_qty', read_only=True)
    actualQty = serializers.IntegerField(source='actual_qty', read_only=True)
    difference = serializers.IntegerField(read_only=True)

    class Meta:
        model = StockOpnameItem
        fields = ['id', 'item', 'systemQty', 'actualQty', 'difference', 'notes']

    def get_item(self, obj):
        return {
            'id': str(obj.item_id),
            'code': obj.item.code,
            'name': obj.item.name,
            'unit': obj.item.unit,
            'currentStock': obj.item.current_stock,
        }


class StockOpnameSerializer(serializers.ModelSerializer):
    opnameDate = serializers.DateField(source='opname_date', read_only=True)
    createdBy = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    completedAt = serializers.DateTimeField(source='completed_at', read_only=True)
    items = StockOpnameItemSerializer(many=True, read_only=True)

    class Meta:
        model = StockOpname
        fields = ['id', 'opnameDate', 'status', 'notes', 'createdBy', 'createdAt', 'completedAt', 'items']

    def get_createdBy(self, obj):
        return obj.created_by.email if obj.created_by_id else None


class OpnameStartSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True)


class OpnameItemWriteSerializer(serializers.Serializer):
    itemId = serializers.UUIDField()
    actualQty = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class MovementQuerySerializer(serializers.Serializer):
    itemId = serializers.UUIDField(required=False)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=500, default=50)
