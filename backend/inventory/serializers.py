from rest_framework import serializers

from .models import (
    ConversionRecord, ConversionTemplate, ItemType, MonthlySummary, StockMovement, Vendor,
)


class StockMovementSerializer(serializers.ModelSerializer):
    movement_type_display = serializers.CharField(source='get_movement_type_display', read_only=True)
    source_display = serializers.CharField(source='get_source_display', read_only=True)

    class Meta:
        model = StockMovement
        fields = [
            'id', 'item_type', 'fk_id', 'sku', 'variant_id', 'item_name', 'unit',
            'batch_number', 'description', 'movement_type', 'movement_type_display',
            'source', 'source_display', 'qty', 'unit_cost', 'value', 'date', 'status',
            'created_by', 'updated_by', 'deleted_by', 'created_at', 'updated_at', 'deleted_at',
        ]
        read_only_fields = fields


class StockMovementCreateSerializer(serializers.Serializer):
    """
    Input for recording a movement.

    Quantity and movement type are checked by the ledger service so that
    they fail with their own error codes.
    """
    item_type = serializers.CharField(max_length=20)
    fk_id = serializers.IntegerField(min_value=1)
    movement_type = serializers.CharField(max_length=3)
    qty = serializers.JSONField()
    sku = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    variant_id = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    item_name = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    unit = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    batch_number = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    source = serializers.ChoiceField(choices=StockMovement.Source.choices, required=False)
    status = serializers.ChoiceField(
        choices=[c for c in StockMovement.Status.choices if c[0] != StockMovement.Status.DELETED],
        required=False,
    )
    unit_cost = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, allow_null=True)
    cost = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, allow_null=True,
                                    help_text="Alias of unit_cost")
    value = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, allow_null=True)
    date = serializers.DateTimeField(required=False, allow_null=True)


class MonthlySummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = MonthlySummary
        fields = [
            'id', 'year', 'month', 'item_type', 'fk_id', 'sku', 'variant_id', 'item_name', 'unit',
            'opening_qty', 'in_qty', 'out_qty', 'closing_qty',
            'opening_value', 'in_value', 'out_value', 'closing_value',
            'created_by', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class PeriodSerializer(serializers.Serializer):
    year = serializers.IntegerField(required=False)
    month = serializers.IntegerField(required=False)


class MonthToDateSerializer(PeriodSerializer):
    as_of = serializers.DateField(required=False, allow_null=True)


class SummaryRangeSerializer(serializers.Serializer):
    start_year = serializers.IntegerField()
    start_month = serializers.IntegerField()
    end_year = serializers.IntegerField()
    end_month = serializers.IntegerField()
    item_type = serializers.ChoiceField(choices=ItemType.choices, required=False)
    fk_id = serializers.IntegerField(min_value=1, required=False)
    sku = serializers.CharField(required=False, allow_blank=True)


class ItemPeriodSerializer(serializers.Serializer):
    year = serializers.IntegerField()
    month = serializers.IntegerField()
    item_type = serializers.ChoiceField(choices=ItemType.choices)
    fk_id = serializers.IntegerField(min_value=1)
    carry_forward = serializers.BooleanField(required=False, default=False)


class VendorSerializer(serializers.ModelSerializer):
    class Meta:
        model = Vendor
        fields = [
            'id', 'unique_id', 'company_name', 'supplier_name', 'contact_no', 'address', 'remarks',
            'status', 'created_by', 'updated_by', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'unique_id', 'created_by', 'updated_by', 'created_at', 'updated_at']

    def validate_company_name(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("company_name is required")
        return value.strip()


class ConversionTemplateSerializer(serializers.ModelSerializer):
    class Meta:
        model = ConversionTemplate
        fields = [
            'id', 'template_name', 'description', 'template_data', 'status',
            'created_by', 'updated_by', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_by', 'updated_by', 'created_at', 'updated_at']


class ConversionRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = ConversionRecord
        fields = [
            'id', 'conversion_ref', 'production_ref', 'template', 'template_name', 'quantity',
            'inputs', 'outputs', 'total_input_cost', 'notes', 'status', 'created_by', 'created_at',
        ]
        read_only_fields = fields


class ProductionPlanItemSerializer(serializers.Serializer):
    template_id = serializers.IntegerField(min_value=1)
    quantity = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)
    multiplier = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)

    def validate(self, data):
        quantity = data.get('quantity') or data.get('multiplier') or 1
        if quantity <= 0:
            raise serializers.ValidationError("Quantity must be greater than zero")
        return data


class ProductionPlanSerializer(serializers.Serializer):
    production_plan = ProductionPlanItemSerializer(many=True, allow_empty=False)


class ProductionExecuteSerializer(ProductionPlanSerializer):
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
