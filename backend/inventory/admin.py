from django.contrib import admin
from django.utils.html import format_html

from utils.constants import MOVEMENT_COLORS

from .models import (
    ConversionRecord, ConversionTemplate, Customer, MonthlySummary, StockMovement, Vendor,
)


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    """Read-only view of the stock ledger"""
    list_display = [
        'id', 'date', 'item_type', 'fk_id', 'sku', 'item_name',
        'movement_badge', 'source', 'qty', 'value', 'status'
    ]
    list_filter = ['item_type', 'movement_type', 'source', 'status']
    search_fields = ['sku', 'item_name', 'batch_number', 'description']
    date_hierarchy = 'date'

    def movement_badge(self, obj):
        color = MOVEMENT_COLORS.get(obj.movement_type, '#6B7280')
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 10px; border-radius: 3px;">{}</span>',
            color,
            obj.movement_type
        )
    movement_badge.short_description = 'Movement'
    movement_badge.admin_order_field = 'movement_type'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(MonthlySummary)
class MonthlySummaryAdmin(admin.ModelAdmin):
    list_display = [
        'year', 'month', 'item_type', 'fk_id', 'item_name',
        'opening_qty', 'in_qty', 'out_qty', 'closing_qty', 'closing_value'
    ]
    list_filter = ['year', 'month', 'item_type']
    search_fields = ['sku', 'item_name']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    list_display = ['unique_id', 'company_name', 'supplier_name', 'contact_no', 'status', 'deleted_at']
    list_filter = ['status']
    search_fields = ['unique_id', 'company_name', 'supplier_name']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['unique_id', 'company_name', 'type', 'status', 'deleted_at']
    list_filter = ['type', 'status']
    search_fields = ['unique_id', 'company_name']


@admin.register(ConversionTemplate)
class ConversionTemplateAdmin(admin.ModelAdmin):
    list_display = ['template_name', 'status', 'updated_at']
    list_filter = ['status']
    search_fields = ['template_name', 'description']


@admin.register(ConversionRecord)
class ConversionRecordAdmin(admin.ModelAdmin):
    list_display = ['conversion_ref', 'template_name', 'quantity', 'total_input_cost', 'status', 'created_at']
    list_filter = ['status']
    search_fields = ['conversion_ref', 'production_ref', 'template_name']
    readonly_fields = ['created_at']
