"""
Production Service

Daily production from conversion templates:
1. Calculate material requirements for a plan of [{template_id, quantity}]
2. Execute the plan: consume inputs, receive outputs, record conversions
3. Report production history grouped by production run

Business Rules:
- A plan only uses ACTIVE templates
- Execution is all-or-nothing and refused when any input is short
- Runs sharing an input are serialized on its StockItemLock row
- Scaled line quantities must fit 2 decimal places; nothing is rounded
- Inputs are issued at their current average cost
- Outputs are received at the template cost when given, otherwise they
  share the template's consumed input cost in proportion to quantity
"""

import logging
import math
import secrets
import string
from decimal import Decimal, InvalidOperation
from typing import Dict, List

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Max, Sum
from django.utils import timezone

from inventory.models import ConversionRecord, ConversionTemplate, StockItemLock, StockMovement
from inventory.services.balance_service import BalanceService, end_of_day
from inventory.services.ledger_service import LedgerService, to_datetime, to_decimal
from utils.constants import PRODUCTION_REF_PREFIX
from utils.exceptions import InsufficientStock, TemplateNotFound

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')
ZERO = Decimal('0.00')
LINE_FIELDS = ('sku', 'variant_id', 'item_name', 'unit')


def generate_production_ref(today=None):
    """PROD-YYYYMMDD-XXXXXXXXX"""
    today = today or timezone.localdate()
    alphabet = string.ascii_uppercase + string.digits
    suffix = ''.join(secrets.choice(alphabet) for _ in range(9))
    return f"{PRODUCTION_REF_PREFIX}-{today:%Y%m%d}-{suffix}"


def _line_key(line):
    return line['item_type'], int(line['fk_id'])


def _normalize_plan(plan) -> Dict[int, Decimal]:
    """
    Validate a production plan and merge repeated templates.

    Returns:
        {template_id: quantity} in plan order
    """
    if not isinstance(plan, list) or not plan:
        raise ValidationError({'production_plan': 'production_plan must be a non-empty list'})

    quantities = {}
    for entry in plan:
        if not isinstance(entry, dict) or not entry.get('template_id'):
            raise ValidationError({'production_plan': 'Each plan item must have a template_id'})
        raw_qty = entry.get('quantity') or entry.get('multiplier') or 1
        try:
            template_id = int(entry['template_id'])
            quantity = to_decimal(raw_qty)
        except (InvalidOperation, TypeError, ValueError):
            raise ValidationError({'production_plan': 'template_id and quantity must be numbers'})
        if not quantity.is_finite():
            raise ValidationError({'production_plan': f'Quantity must be a finite number, got {raw_qty}'})
        if quantity <= 0:
            raise ValidationError({'production_plan': 'Quantity must be greater than zero'})
        quantities[template_id] = quantities.get(template_id, ZERO) + quantity
    return quantities


def _load_templates(template_ids, lock=False) -> Dict[int, ConversionTemplate]:
    queryset = ConversionTemplate.objects.filter(
        id__in=template_ids, status=ConversionTemplate.Status.ACTIVE
    ).order_by('id')
    if lock:
        queryset = queryset.select_for_update()
    templates = {template.id: template for template in queryset}
    for template_id in template_ids:
        if template_id not in templates:
            raise TemplateNotFound(f'Template {template_id} not found')
    return templates


def _scale(lines, quantity):
    scaled = []
    for line in lines:
        qty = Decimal(str(line['qty'])) * quantity
        if qty != qty.quantize(TWO_PLACES):
            raise ValidationError({'production_plan': (
                f"{line['item_type']}#{line['fk_id']}: {line['qty']} x {quantity} = {qty} "
                "has more than 2 decimal places"
            )})
        scaled.append({**line, 'qty': qty})
    return scaled


def _lock_items(templates):
    """
    Lock the StockItemLock row of every input of ``templates``.

    Rows are created on first use and locked in (item_type, fk_id) order.
    """
    keys = sorted({_line_key(line) for template in templates.values() for line in template.inputs})
    locks = []
    for item_type, fk_id in keys:
        StockItemLock.objects.get_or_create(item_type=item_type, fk_id=fk_id)
        locks.append(StockItemLock.objects.select_for_update().get(item_type=item_type, fk_id=fk_id))
    return locks


class ProductionService:
    """Service for the production workflow."""

    @staticmethod
    def active_templates():
        return ConversionTemplate.objects.filter(status=ConversionTemplate.Status.ACTIVE).order_by('template_name')

    @staticmethod
    def calculate_requirements(plan: List[Dict]) -> Dict:
        """
        Aggregate what a production plan consumes and produces.

        Args:
            plan: [{'template_id': int, 'quantity': number}, ...]
                  ('multiplier' is accepted in place of 'quantity')

        Returns:
            Dict: {
                'materials': [{sku, item_type, fk_id, ..., required, available, shortage, feasible}],
                'products': [{sku, item_type, fk_id, ..., qty, cost}],
                'templates': [{template_id, template_name, quantity}],
                'feasible': bool,
                'summary': {total_materials, total_products, total_templates}
            }

        Raises:
            ValidationError: malformed plan
            TemplateNotFound: unknown or inactive template
        """
        quantities = _normalize_plan(plan)
        templates = _load_templates(list(quantities))
        return ProductionService._requirements(quantities, templates)

    @staticmethod
    def _requirements(quantities, templates):
        materials = {}
        products = {}
        template_details = []

        for template_id, quantity in quantities.items():
            template = templates[template_id]
            for line in _scale(template.inputs, quantity):
                key = _line_key(line)
                entry = materials.setdefault(key, {
                    'item_type': key[0],
                    'fk_id': key[1],
                    **{field: line.get(field) for field in LINE_FIELDS},
                    'required': ZERO,
                })
                entry['required'] += line['qty']
            for line in _scale(template.outputs, quantity):
                key = _line_key(line)
                entry = products.setdefault(key, {
                    'item_type': key[0],
                    'fk_id': key[1],
                    **{field: line.get(field) for field in LINE_FIELDS},
                    'qty': ZERO,
                    'cost': to_decimal(line.get('cost'), ZERO),
                })
                entry['qty'] += line['qty']
            template_details.append({
                'template_id': template_id,
                'template_name': template.template_name,
                'quantity': quantity,
            })

        feasible = True
        for (item_type, fk_id), entry in materials.items():
            available = BalanceService.available_qty(item_type, fk_id)
            entry['available'] = available
            entry['shortage'] = max(ZERO, entry['required'] - available)
            entry['feasible'] = available >= entry['required']
            feasible = feasible and entry['feasible']

        return {
            'materials': list(materials.values()),
            'products': list(products.values()),
            'templates': template_details,
            'feasible': feasible,
            'summary': {
                'total_materials': len(materials),
                'total_products': len(products),
                'total_templates': len(template_details),
            },
        }

    @staticmethod
    def execute(plan: List[Dict], notes: str = None, created_by: int = None) -> Dict:
        """
        Run a production plan atomically.

        Raises:
            ValidationError: malformed plan
            TemplateNotFound: unknown or inactive template
            InsufficientStock: at least one input is short (nothing is written)
        """
        quantities = _normalize_plan(plan)

        with transaction.atomic():
            templates = _load_templates(list(quantities), lock=True)
            _lock_items(templates)
            requirements = ProductionService._requirements(quantities, templates)

            if not requirements['feasible']:
                shortages = [m for m in requirements['materials'] if not m['feasible']]
                short_items = ', '.join(f"{m['item_type']}#{m['fk_id']}" for m in shortages)
                logger.warning(f"Production refused, {len(shortages)} material(s) short: {short_items}")
                raise InsufficientStock(shortages=shortages)

            production_ref = generate_production_ref()
            now = timezone.now()
            unit_costs = {
                (m['item_type'], m['fk_id']): BalanceService.average_unit_cost(m['item_type'], m['fk_id'])
                for m in requirements['materials']
            }

            movements = []
            for material in requirements['materials']:
                key = (material['item_type'], material['fk_id'])
                movements.append(LedgerService.record(
                    item_type=material['item_type'],
                    fk_id=material['fk_id'],
                    movement_type=StockMovement.MovementType.OUT,
                    qty=material['required'],
                    unit_cost=unit_costs[key],
                    value=material['required'] * unit_costs[key],
                    date=now,
                    source=StockMovement.Source.PRODUCTION,
                    batch_number=production_ref,
                    description=f'Used in production: {production_ref}',
                    created_by=created_by,
                    **{field: material.get(field) for field in LINE_FIELDS},
                ))

            output_values = {}
            records = []
            for template_id, quantity in quantities.items():
                template = templates[template_id]
                inputs = _scale(template.inputs, quantity)
                outputs = _scale(template.outputs, quantity)

                input_cost = sum(
                    (line['qty'] * unit_costs[_line_key(line)] for line in inputs), ZERO
                ).quantize(TWO_PLACES)

                uncosted_qty = sum(
                    (line['qty'] for line in outputs if not to_decimal(line.get('cost'), ZERO)), ZERO
                )
                for line in outputs:
                    cost = to_decimal(line.get('cost'), ZERO)
                    if cost:
                        value = line['qty'] * cost
                    elif uncosted_qty:
                        value = input_cost * line['qty'] / uncosted_qty
                    else:
                        value = ZERO
                    key = _line_key(line)
                    output_values[key] = output_values.get(key, ZERO) + value

                records.append(ConversionRecord.objects.create(
                    conversion_ref=f"{production_ref}-T{template_id}",
                    production_ref=production_ref,
                    template=template,
                    template_name=template.template_name,
                    quantity=quantity,
                    inputs=_json_lines(inputs),
                    outputs=_json_lines(outputs),
                    total_input_cost=input_cost,
                    notes=notes or f'Daily production batch: {production_ref}',
                    status=ConversionRecord.Status.COMPLETED,
                    created_by=created_by,
                    created_at=now,
                ))

            for product in requirements['products']:
                key = (product['item_type'], product['fk_id'])
                movements.append(LedgerService.record(
                    item_type=product['item_type'],
                    fk_id=product['fk_id'],
                    movement_type=StockMovement.MovementType.IN,
                    qty=product['qty'],
                    value=output_values.get(key, ZERO),
                    date=now,
                    source=StockMovement.Source.PRODUCTION,
                    batch_number=production_ref,
                    description=f'Produced in production: {production_ref}',
                    created_by=created_by,
                    **{field: product.get(field) for field in LINE_FIELDS},
                ))

        logger.info(
            f"Production {production_ref} executed: {len(requirements['materials'])} materials consumed, "
            f"{len(requirements['products'])} products produced"
        )

        return {
            'production_ref': production_ref,
            'materials_consumed': len(requirements['materials']),
            'products_produced': len(requirements['products']),
            'templates_used': len(requirements['templates']),
            'movements_created': len(movements),
            'conversion_records': len(records),
        }

    @staticmethod
    def history(limit=20, page=1, date_from=None, date_to=None) -> Dict:
        """
        Completed production runs, newest first, one entry per production ref.

        Returns:
            Dict: {'data': [...], 'total', 'page', 'limit', 'pages'}
        """
        limit = max(1, int(limit or 20))
        page = max(1, int(page or 1))

        records = ConversionRecord.objects.filter(status=ConversionRecord.Status.COMPLETED)
        if date_from:
            records = records.filter(created_at__gte=to_datetime(date_from))
        if date_to:
            records = records.filter(created_at__lt=end_of_day(date_to))

        runs = records.values('production_ref').annotate(
            date=Max('created_at'),
            total_cost=Sum('total_input_cost'),
        ).order_by('-date', '-production_ref')

        total = runs.count()
        offset = (page - 1) * limit
        page_runs = list(runs[offset:offset + limit])

        by_ref = {}
        for record in records.filter(production_ref__in=[run['production_ref'] for run in page_runs]).order_by('id'):
            by_ref.setdefault(record.production_ref, []).append({
                'template_id': record.template_id,
                'template_name': record.template_name,
                'quantity': record.quantity,
                'inputs': record.inputs,
                'outputs': record.outputs,
                'total_input_cost': record.total_input_cost,
            })

        data = [{
            'production_ref': run['production_ref'],
            'date': run['date'],
            'templates': by_ref.get(run['production_ref'], []),
            'total_cost': run['total_cost'] or ZERO,
        } for run in page_runs]

        return {
            'data': data,
            'total': total,
            'page': page,
            'limit': limit,
            'pages': math.ceil(total / limit) if total else 0,
        }


def _json_lines(lines):
    return [{**line, 'qty': float(line['qty'])} for line in lines]
