import logging
import math

from django.db import transaction
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.response import Response

from .auth import acting_user_id
from .filters import ConversionRecordFilter, StockMovementFilter, VendorFilter
from .models import ConversionRecord, ConversionTemplate, StockMovement, Vendor
from .serializers import (
    ConversionRecordSerializer, ConversionTemplateSerializer, ItemPeriodSerializer, MonthToDateSerializer,
    MonthlySummarySerializer, PeriodSerializer, ProductionExecuteSerializer, ProductionPlanSerializer,
    StockMovementCreateSerializer, StockMovementSerializer, SummaryRangeSerializer, VendorSerializer,
)
from .services.balance_service import BalanceService, end_of_day, previous_month, validate_period
from .services.export_service import StockExportService
from .services.ledger_service import LedgerService
from .services.pdf_report_service import PDFReportService
from .services.print_template_service import PrintTemplateService
from .services.production_service import ProductionService
from .services.summary_service import SummaryService
from .services.vendor_service import VendorService
from .tasks import broadcast_stock_event

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
DEFAULT_LIMIT = 20
MAX_LIMIT = 1000


def _int_param(params, name, default=None, minimum=None):
    value = params.get(name)
    if value in (None, ''):
        return default
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError({name: f'{name} must be an integer'})
    if minimum is not None and value < minimum:
        raise ValidationError({name: f'{name} must be at least {minimum}'})
    return value


def _paginate(request, queryset, serializer_class):
    """Page/limit pagination in the {success, data, meta} envelope."""
    page = _int_param(request.query_params, 'page', 1, minimum=1)
    limit = min(_int_param(request.query_params, 'limit', DEFAULT_LIMIT, minimum=1), MAX_LIMIT)
    total = queryset.count()
    offset = (page - 1) * limit
    data = serializer_class(queryset[offset:offset + limit], many=True).data
    return Response({
        'success': True,
        'data': data,
        'meta': {
            'total': total,
            'page': page,
            'limit': limit,
            'pages': math.ceil(total / limit) if total else 0,
        },
    })


def _period_from(request):
    params = request.query_params if request.method == 'GET' else request.data
    if not isinstance(params, dict):
        raise ValidationError('Expected an object with year and month')
    year = params.get('year')
    month = params.get('month')
    if year in (None, '') or month in (None, ''):
        raise ValidationError('year and month are required')
    return validate_period(year, month)


def _on_commit_broadcast(event_type, payload):
    transaction.on_commit(lambda: broadcast_stock_event(event_type, payload))


# ============================================================================
# Stock ledger
# ============================================================================

@api_view(['POST'])
def stock_add(request):
    """
    Record a stock movement.

    Body: item_type, fk_id, movement_type (IN/OUT), qty, and optionally
    sku, variant_id, item_name, unit, batch_number, description, source,
    status, unit_cost (or cost), value, date.
    """
    serializer = StockMovementCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = dict(serializer.validated_data)

    unit_cost = data.pop('unit_cost', None)
    cost = data.pop('cost', None)
    movement = LedgerService.record(
        unit_cost=unit_cost if unit_cost is not None else cost,
        created_by=acting_user_id(request),
        **data,
    )

    payload = StockMovementSerializer(movement).data
    _on_commit_broadcast('movement.recorded', payload)
    return Response(
        {'success': True, 'data': payload, 'message': 'Stock movement recorded'},
        status=status.HTTP_201_CREATED
    )


@api_view(['GET'])
def stock_list(request):
    """
    List stock movements (soft-deleted rows excluded).

    Filters: see StockMovementFilter. ``limit`` caps the number of rows,
    ``page`` selects the page.
    """
    queryset = StockMovement.objects.alive().order_by('-date', '-id')
    queryset = StockMovementFilter(request.query_params, queryset=queryset).qs
    return _paginate(request, queryset, StockMovementSerializer)


@api_view(['GET'])
def stock_detail(request, pk):
    movement = get_object_or_404(StockMovement.objects.alive(), pk=pk)
    return Response({'success': True, 'data': StockMovementSerializer(movement).data})


@api_view(['PATCH', 'DELETE'])
def stock_remove(request, pk):
    """Soft-delete a movement; it no longer counts towards any balance."""
    get_object_or_404(StockMovement.objects.alive(), pk=pk)
    movement = LedgerService.soft_delete(pk, deleted_by=acting_user_id(request))
    return Response({
        'success': True,
        'data': StockMovementSerializer(movement).data,
        'message': 'Stock movement removed',
    })


@api_view(['GET'])
def stock_current(request):
    """On-hand quantity and value per item. Filters: item_type, fk_id, sku."""
    params = request.query_params
    balances = BalanceService.current_balances(
        item_type=(params.get('item_type') or '').upper() or None,
        fk_id=_int_param(params, 'fk_id'),
        sku=params.get('sku') or None,
    )
    return Response({'success': True, 'data': balances, 'total': len(balances)})


@api_view(['GET'])
def stock_statement(request):
    """
    Movements of one item with a running balance.

    Query params: item_type, fk_id (required), start_date, end_date (inclusive).
    """
    params = request.query_params
    item_type = (params.get('item_type') or '').upper()
    fk_id = _int_param(params, 'fk_id')
    if not item_type or fk_id is None:
        raise ValidationError('item_type and fk_id are required')
    try:
        statement = BalanceService.item_statement(
            item_type, fk_id,
            start=params.get('start_date') or None,
            end=end_of_day(params.get('end_date')) if params.get('end_date') else None,
        )
    except ValueError as e:
        raise ValidationError(str(e))
    return Response({'success': True, 'data': statement})


@api_view(['GET'])
def stock_export_xlsx(request):
    """Download the filtered movement list as XLSX."""
    queryset = StockMovement.objects.alive().order_by('date', 'id')
    queryset = StockMovementFilter(request.query_params, queryset=queryset).qs
    buffer = StockExportService.export_movements_to_xlsx(queryset)
    response = HttpResponse(buffer.getvalue(), content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="stock_movements_{timezone.localdate()}.xlsx"'
    return response


# ============================================================================
# Monthly summaries
# ============================================================================

def _generation_response(result, year, month):
    return Response({
        'success': True,
        'count': result['count'],
        'month': f'{year}-{month:02d}',
        'data': MonthlySummarySerializer(result['items'], many=True).data,
    })


@api_view(['POST'])
def summary_generate(request):
    """Generate (or regenerate) all summaries of a month. Body: year, month."""
    year, month = _period_from(request)
    result = SummaryService.generate(year, month, created_by=acting_user_id(request), nowait=True)
    _on_commit_broadcast('summary.generated', {'year': year, 'month': month, 'count': result['count']})
    return _generation_response(result, year, month)


@api_view(['POST'])
def summary_generate_from_last_month(request):
    """
    Generate a month carrying forward last month's items.

    Without year/month the previous calendar month is generated.
    """
    serializer = PeriodSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    year = serializer.validated_data.get('year')
    month = serializer.validated_data.get('month')
    if year is None or month is None:
        today = timezone.localdate()
        year, month = previous_month(today.year, today.month)
    year, month = validate_period(year, month)

    result = SummaryService.generate_from_last_month(
        year, month, created_by=acting_user_id(request), nowait=True
    )
    _on_commit_broadcast('summary.generated', {'year': year, 'month': month, 'count': result['count']})
    return _generation_response(result, year, month)


@api_view(['POST'])
def summary_generate_month_to_date(request):
    """
    Write a month's rows counting movements up to an inclusive date.

    Body: year, month (default the current month), as_of (default today,
    clamped into the month).
    """
    serializer = MonthToDateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    result = SummaryService.generate_month_to_date(
        data.get('year'), data.get('month'), as_of=data.get('as_of'),
        created_by=acting_user_id(request), nowait=True,
    )
    year, month = result['year'], result['month']
    _on_commit_broadcast('summary.generated', {'year': year, 'month': month, 'count': result['count']})
    return Response({
        'success': True,
        'count': result['count'],
        'month': f'{year}-{month:02d}',
        'as_of': result['as_of'],
        'data': MonthlySummarySerializer(result['items'], many=True).data,
    })


@api_view(['GET'])
def summary_range_view(request):
    """
    Per-item opening balance and movements over a range of months.

    Query params: start_year, start_month, end_year, end_month (required),
    item_type, fk_id, sku.
    """
    serializer = SummaryRangeSerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    view = SummaryService.range_view(
        data['start_year'], data['start_month'], data['end_year'], data['end_month'],
        item_type=data.get('item_type'),
        fk_id=data.get('fk_id'),
        sku=data.get('sku') or None,
    )
    return Response({'success': True, 'data': view, 'total': len(view['items'])})


@api_view(['POST'])
def summary_generate_item(request):
    """Generate the summary of one item. Body: year, month, item_type, fk_id."""
    serializer = ItemPeriodSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    summary = SummaryService.generate_for_item(
        data['year'], data['month'], data['item_type'], data['fk_id'],
        created_by=acting_user_id(request),
        carry_forward=data['carry_forward'],
    )
    return Response({'success': True, 'data': MonthlySummarySerializer(summary).data})


@api_view(['GET'])
def summary_list(request):
    """
    Persisted summaries of a month.

    Query params: year, month (required), item_type, fk_id, sku.
    """
    year, month = _period_from(request)
    params = request.query_params
    summaries = SummaryService.query(
        year, month,
        item_type=params.get('item_type') or None,
        fk_id=_int_param(params, 'fk_id'),
        sku=params.get('sku') or None,
    )
    return Response({'success': True, 'data': MonthlySummarySerializer(summaries, many=True).data})


@api_view(['GET'])
def summary_export_xlsx(request):
    year, month = _period_from(request)
    buffer = StockExportService.export_summaries_to_xlsx(SummaryService.query(year, month), year, month)
    response = HttpResponse(buffer.getvalue(), content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="stock_summary_{year}-{month:02d}.xlsx"'
    return response


@api_view(['GET'])
def summary_export_csv(request):
    year, month = _period_from(request)
    buffer = StockExportService.export_summaries_to_csv(SummaryService.query(year, month))
    response = HttpResponse(buffer.getvalue(), content_type='text/csv')
    response['Content-Disposition'] = f'attachment; filename="stock_summary_{year}-{month:02d}.csv"'
    return response


@api_view(['GET'])
def summary_export_pdf(request):
    year, month = _period_from(request)
    buffer = PDFReportService.generate_monthly_summary_pdf(year, month)
    response = HttpResponse(buffer.getvalue(), content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="stock_summary_{year}-{month:02d}.pdf"'
    return response


# ============================================================================
# Production
# ============================================================================

@api_view(['GET'])
def production_templates(request):
    templates = ProductionService.active_templates()
    data = ConversionTemplateSerializer(templates, many=True).data
    return Response({'success': True, 'data': data, 'total': len(data)})


@api_view(['POST'])
def production_calculate(request):
    """Body: production_plan = [{template_id, quantity}]"""
    serializer = ProductionPlanSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    requirements = ProductionService.calculate_requirements(serializer.validated_data['production_plan'])
    return Response({'success': True, 'data': requirements})


@api_view(['POST'])
def production_execute(request):
    """
    Run a production plan.

    Body: production_plan = [{template_id, quantity}], notes.
    Fails with 400 and the list of shortages when stock is insufficient.
    """
    serializer = ProductionExecuteSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    result = ProductionService.execute(
        serializer.validated_data['production_plan'],
        notes=serializer.validated_data.get('notes'),
        created_by=acting_user_id(request),
    )
    _on_commit_broadcast('production.executed', result)
    return Response({
        'success': True,
        'data': result,
        'message': 'Daily production executed successfully',
    })


@api_view(['GET'])
def production_history(request):
    params = request.query_params
    history = ProductionService.history(
        limit=_int_param(params, 'limit', DEFAULT_LIMIT, minimum=1),
        page=_int_param(params, 'page', 1, minimum=1),
        date_from=params.get('date_from') or None,
        date_to=params.get('date_to') or None,
    )
    return Response({'success': True, **history})


@api_view(['GET', 'POST'])
def conversion_template_list(request):
    if request.method == 'POST':
        serializer = ConversionTemplateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        template = serializer.save(created_by=acting_user_id(request))
        logger.info(f"Created conversion template {template.id} ({template.template_name})")
        return Response(
            {'success': True, 'data': ConversionTemplateSerializer(template).data, 'message': 'Template created'},
            status=status.HTTP_201_CREATED
        )

    queryset = ConversionTemplate.objects.all().order_by('template_name')
    if request.query_params.get('status'):
        queryset = queryset.filter(status=request.query_params['status'].upper())
    return _paginate(request, queryset, ConversionTemplateSerializer)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
def conversion_template_detail(request, pk):
    template = get_object_or_404(ConversionTemplate, pk=pk)

    if request.method == 'GET':
        return Response({'success': True, 'data': ConversionTemplateSerializer(template).data})

    if request.method == 'DELETE':
        # Executed records keep pointing at archived templates
        template.status = ConversionTemplate.Status.ARCHIVED
        template.updated_by = acting_user_id(request)
        template.save(update_fields=['status', 'updated_by', 'updated_at'])
        logger.info(f"Archived conversion template {template.id}")
        return Response({'success': True, 'message': 'Template archived'})

    serializer = ConversionTemplateSerializer(template, data=request.data, partial=request.method == 'PATCH')
    serializer.is_valid(raise_exception=True)
    template = serializer.save(updated_by=acting_user_id(request))
    return Response({'success': True, 'data': ConversionTemplateSerializer(template).data, 'message': 'Template updated'})


@api_view(['GET'])
def conversion_record_list(request):
    queryset = ConversionRecord.objects.all()
    queryset = ConversionRecordFilter(request.query_params, queryset=queryset).qs
    return _paginate(request, queryset, ConversionRecordSerializer)


# ============================================================================
# Vendors
# ============================================================================

def _get_vendor(pk):
    vendor = Vendor.objects.alive().filter(pk=pk).first()
    if vendor is None:
        raise NotFound('Vendor not found')
    return vendor


@api_view(['POST'])
def vendor_add(request):
    serializer = VendorSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    vendor = VendorService.create(serializer.validated_data, created_by=acting_user_id(request))
    return Response(
        {'success': True, 'data': VendorSerializer(vendor).data, 'message': 'Vendor created'},
        status=status.HTTP_201_CREATED
    )


@api_view(['GET'])
def vendor_check_unique(request, unique_id):
    unique_id = unique_id.strip()
    if not unique_id:
        raise ValidationError('uniqueId is required')
    return Response({'success': True, 'available': VendorService.is_unique_id_available(unique_id)})


@api_view(['GET'])
def vendor_list(request):
    queryset = VendorFilter(request.query_params, queryset=Vendor.objects.alive()).qs
    return _paginate(request, queryset, VendorSerializer)


@api_view(['GET'])
def vendor_detail(request, pk):
    return Response({'success': True, 'data': VendorSerializer(_get_vendor(pk)).data})


@api_view(['PUT', 'PATCH'])
def vendor_update(request, pk):
    vendor = _get_vendor(pk)
    serializer = VendorSerializer(vendor, data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    vendor = serializer.save(updated_by=acting_user_id(request))
    logger.info(f"Updated vendor {vendor.unique_id}")
    return Response({'success': True, 'data': VendorSerializer(vendor).data, 'message': 'Vendor updated'})


@api_view(['DELETE'])
def vendor_delete(request, pk):
    VendorService.soft_delete(_get_vendor(pk), deleted_by=acting_user_id(request))
    return Response({'success': True, 'message': 'Vendor deleted'})


# ============================================================================
# Print templates
# ============================================================================

@api_view(['GET'])
def print_templates(request):
    return Response({'success': True, 'data': PrintTemplateService.load()})


@api_view(['POST'])
def print_templates_save(request):
    data = PrintTemplateService.save(request.data.get('templates'), request.data.get('documentTypes'))
    return Response({'success': True, 'message': 'Print templates saved successfully', 'data': data})


@api_view(['POST'])
def print_template_save_fields(request, template_type):
    template = PrintTemplateService.save_fields(template_type, request.data.get('fieldVisibility'))
    return Response({'success': True, 'message': 'Template fields saved successfully', 'data': template})
