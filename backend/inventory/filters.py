from django.db.models import Q
from django_filters import rest_framework as filters

from .models import ConversionRecord, StockMovement, Vendor
from .services.balance_service import end_of_day, month_bounds, validate_period


class StockMovementFilter(filters.FilterSet):
    """
    Stock movement filtering.

    Available filters:
    - Item: item_type, fk_id, sku
    - Movement: movement_type, source, status
    - Date range: start_date, end_date (end inclusive for bare dates)
    - Month: year + month
    - Text search: search (sku, item name, batch, description)
    """
    item_type = filters.CharFilter(field_name='item_type', lookup_expr='iexact')
    fk_id = filters.NumberFilter(field_name='fk_id')
    sku = filters.CharFilter(field_name='sku')
    movement_type = filters.CharFilter(field_name='movement_type', lookup_expr='iexact')
    source = filters.CharFilter(field_name='source', lookup_expr='iexact')
    status = filters.CharFilter(field_name='status', lookup_expr='iexact')
    start_date = filters.DateTimeFilter(
        field_name='date',
        lookup_expr='gte',
        help_text="Movements on or after this date"
    )
    end_date = filters.CharFilter(method='filter_end_date', help_text="Movements up to this date")
    year = filters.NumberFilter(method='filter_period')
    month = filters.NumberFilter(method='filter_period')
    search = filters.CharFilter(method='filter_search')

    class Meta:
        model = StockMovement
        fields = ['item_type', 'fk_id', 'sku', 'movement_type', 'source', 'status']

    def filter_end_date(self, queryset, name, value):
        try:
            return queryset.filter(date__lt=end_of_day(value))
        except ValueError:
            return queryset.none()

    def filter_period(self, queryset, name, value):
        year = self.data.get('year')
        month = self.data.get('month')
        if not year or not month:
            return queryset
        if name == 'month':
            # year + month are applied once, from the 'year' filter
            return queryset
        start, end = month_bounds(*validate_period(year, month))
        return queryset.filter(date__gte=start, date__lt=end)

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(sku__icontains=value) |
            Q(item_name__icontains=value) |
            Q(batch_number__icontains=value) |
            Q(description__icontains=value)
        )


class VendorFilter(filters.FilterSet):
    status = filters.CharFilter(field_name='status', lookup_expr='iexact')
    search = filters.CharFilter(method='filter_search')

    class Meta:
        model = Vendor
        fields = ['status']

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(unique_id__icontains=value) |
            Q(company_name__icontains=value) |
            Q(supplier_name__icontains=value) |
            Q(contact_no__icontains=value)
        )


class ConversionRecordFilter(filters.FilterSet):
    production_ref = filters.CharFilter(field_name='production_ref')
    template = filters.NumberFilter(field_name='template_id')
    status = filters.CharFilter(field_name='status', lookup_expr='iexact')
    date_from = filters.DateTimeFilter(field_name='created_at', lookup_expr='gte')
    date_to = filters.DateTimeFilter(field_name='created_at', lookup_expr='lte')

    class Meta:
        model = ConversionRecord
        fields = ['production_ref', 'template', 'status']
