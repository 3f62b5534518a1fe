from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from utils.constants import POSTED_STATUSES
from utils.exceptions import LedgerImmutableError


class ItemType(models.TextChoices):
    MATERIAL = 'MATERIAL', 'Material'
    PRODUCT = 'PRODUCT', 'Product'


class SoftDeleteQuerySet(models.QuerySet):
    def alive(self):
        return self.filter(deleted_at__isnull=True)


class StockMovementQuerySet(SoftDeleteQuerySet):
    def posted(self):
        """Rows that count towards balances and summaries."""
        return self.filter(deleted_at__isnull=True, status__in=POSTED_STATUSES)

    def for_item(self, item_type, fk_id):
        return self.filter(item_type=item_type, fk_id=fk_id)


class StockMovement(models.Model):
    """
    One entry of the stock ledger.

    Every receipt or issue of a material or product is appended here as an
    IN or OUT row. Rows are never edited after they are written; the only
    permitted change is a soft delete (status DELETED + deleted_at), which
    takes the row out of every balance.
    """

    class MovementType(models.TextChoices):
        IN = 'IN', 'Stock In'
        OUT = 'OUT', 'Stock Out'

    class Source(models.TextChoices):
        PURCHASE = 'PURCHASE', 'Purchase'
        PRODUCTION = 'PRODUCTION', 'Production'
        SALES = 'SALES', 'Sales'
        ADJUSTMENT = 'ADJUSTMENT', 'Adjustment'
        RETURN = 'RETURN', 'Return'
        CUSTOMER_RETURN = 'CUSTOMER_RETURN', 'Customer Return'
        VENDOR_RETURN = 'VENDOR_RETURN', 'Vendor Return'
        OPENING_STOCK = 'OPENING_STOCK', 'Opening Stock'
        CONVERSION = 'CONVERSION', 'Conversion'

    class Status(models.TextChoices):
        ACTIVE = 'ACTIVE', 'Active'
        INACTIVE = 'INACTIVE', 'Inactive'
        PENDING = 'PENDING', 'Pending'
        COMPLETED = 'COMPLETED', 'Completed'
        REJECTED = 'REJECTED', 'Rejected'
        DELETED = 'DELETED', 'Deleted'

    item_type = models.CharField(max_length=20, choices=ItemType.choices, db_index=True)
    fk_id = models.PositiveIntegerField(
        db_index=True,
        help_text="Material id or product id, depending on item_type"
    )
    sku = models.CharField(max_length=100, blank=True, null=True)
    variant_id = models.CharField(max_length=100, blank=True, null=True)
    item_name = models.CharField(max_length=255, blank=True, null=True)
    unit = models.CharField(max_length=50, blank=True, null=True)
    batch_number = models.CharField(max_length=100, blank=True, null=True)
    description = models.TextField(blank=True, null=True)

    movement_type = models.CharField(max_length=3, choices=MovementType.choices)
    source = models.CharField(
        max_length=20,
        choices=Source.choices,
        default=Source.ADJUSTMENT,
    )
    qty = models.DecimalField(max_digits=14, decimal_places=2)
    unit_cost = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal('0.00'))
    value = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Monetary value of the movement (qty x unit cost unless given)"
    )
    date = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="When the stock event happened (not when it was recorded)"
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)

    created_by = models.PositiveIntegerField(null=True, blank=True)
    updated_by = models.PositiveIntegerField(null=True, blank=True)
    deleted_by = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = StockMovementQuerySet.as_manager()

    class Meta:
        db_table = 'stock_records'
        ordering = ['date', 'id']
        verbose_name = 'Stock Movement'
        verbose_name_plural = 'Stock Movements'
        indexes = [
            models.Index(fields=['item_type', 'fk_id', 'date'], name='stock_item_date_idx'),
            models.Index(fields=['movement_type'], name='stock_movement_type_idx'),
            models.Index(fields=['status'], name='stock_status_idx'),
        ]

    def __str__(self):
        sign = '+' if self.movement_type == self.MovementType.IN else '-'
        return f"{self.item_type}#{self.fk_id} {sign}{self.qty} ({self.get_source_display()})"

    @property
    def is_posted(self):
        return self.deleted_at is None and self.status in POSTED_STATUSES

    def clean(self):
        super().clean()
        if self.qty is not None and self.qty < 0:
            raise ValidationError({'qty': 'Quantity cannot be negative'})

    def save(self, *args, **kwargs):
        if self.pk is not None and not getattr(self, '_allow_soft_delete', False):
            raise LedgerImmutableError()
        super().save(*args, **kwargs)

    def soft_delete(self, deleted_by=None):
        self.status = self.Status.DELETED
        self.deleted_at = timezone.now()
        self.deleted_by = deleted_by
        self.updated_by = deleted_by
        self._allow_soft_delete = True
        try:
            self.save(update_fields=['status', 'deleted_at', 'deleted_by', 'updated_by', 'updated_at'])
        finally:
            self._allow_soft_delete = False


class MonthlySummary(models.Model):
    """
    Opening, IN, OUT and closing quantity/value of one item for one month.

    Rows are produced by the summary generator only.
    """
    year = models.PositiveSmallIntegerField()
    month = models.PositiveSmallIntegerField()
    item_type = models.CharField(max_length=20, choices=ItemType.choices)
    fk_id = models.PositiveIntegerField()
    sku = models.CharField(max_length=100, blank=True, null=True)
    variant_id = models.CharField(max_length=100, blank=True, null=True)
    item_name = models.CharField(max_length=255, blank=True, null=True)
    unit = models.CharField(max_length=50, blank=True, null=True)

    opening_qty = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    in_qty = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    out_qty = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    closing_qty = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))

    opening_value = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal('0.00'))
    in_value = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal('0.00'))
    out_value = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal('0.00'))
    closing_value = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal('0.00'))

    created_by = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'stock_monthly_summaries'
        ordering = ['year', 'month', 'item_type', 'fk_id']
        verbose_name = 'Monthly Stock Summary'
        verbose_name_plural = 'Monthly Stock Summaries'
        constraints = [
            models.UniqueConstraint(
                fields=['year', 'month', 'item_type', 'fk_id'],
                name='uniq_summary_period_item',
            ),
        ]
        indexes = [
            models.Index(fields=['item_type', 'fk_id', 'year', 'month'], name='summary_item_period_idx'),
        ]

    def __str__(self):
        return f"{self.year}-{self.month:02d} {self.item_type}#{self.fk_id}: {self.closing_qty}"

    def clean(self):
        """Closing must equal opening + in - out, for quantity and value."""
        super().clean()
        errors = {}
        if self.closing_qty != self.opening_qty + self.in_qty - self.out_qty:
            errors['closing_qty'] = (
                f'{self.opening_qty} + {self.in_qty} - {self.out_qty} '
                f'should equal {self.opening_qty + self.in_qty - self.out_qty}, not {self.closing_qty}'
            )
        if self.closing_value != self.opening_value + self.in_value - self.out_value:
            errors['closing_value'] = (
                f'{self.opening_value} + {self.in_value} - {self.out_value} '
                f'should equal {self.opening_value + self.in_value - self.out_value}, not {self.closing_value}'
            )
        if errors:
            raise ValidationError(errors)


class SummaryPeriodLock(models.Model):
    """Row locked while summaries of its (year, month) are being generated."""
    year = models.PositiveSmallIntegerField()
    month = models.PositiveSmallIntegerField()
    last_generated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'stock_summary_period_locks'
        constraints = [
            models.UniqueConstraint(fields=['year', 'month'], name='uniq_summary_lock_period'),
        ]

    def __str__(self):
        return f"{self.year}-{self.month:02d}"


class StockItemLock(models.Model):
    """Row locked while a production run checks and consumes an item."""
    item_type = models.CharField(max_length=20, choices=ItemType.choices)
    fk_id = models.PositiveIntegerField()

    class Meta:
        db_table = 'stock_item_locks'
        constraints = [
            models.UniqueConstraint(fields=['item_type', 'fk_id'], name='uniq_stock_item_lock'),
        ]

    def __str__(self):
        return f"{self.item_type}#{self.fk_id}"


class PartyStatus(models.TextChoices):
    ACTIVE = 'ACTIVE', 'Active'
    INACTIVE = 'INACTIVE', 'Inactive'


class Vendor(models.Model):
    unique_id = models.CharField(max_length=50, unique=True)
    company_name = models.CharField(max_length=255)
    supplier_name = models.CharField(max_length=255, blank=True, null=True)
    contact_no = models.CharField(max_length=50, blank=True, null=True)
    address = models.TextField(blank=True, null=True)
    remarks = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=PartyStatus.choices, default=PartyStatus.ACTIVE)

    created_by = models.PositiveIntegerField(null=True, blank=True)
    updated_by = models.PositiveIntegerField(null=True, blank=True)
    deleted_by = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        db_table = 'vendors'
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.unique_id} - {self.company_name}"


class Customer(models.Model):
    """
    Customer/supplier master. Suppliers were moved out to ``Vendor`` by
    migration 0002; the rows left here are customers.
    """

    class CustomerType(models.TextChoices):
        CUSTOMER = 'customer', 'Customer'
        SUPPLIER = 'supplier', 'Supplier'
        BOTH = 'both', 'Customer & Supplier'

    unique_id = models.CharField(max_length=50, unique=True)
    company_name = models.CharField(max_length=255)
    supplier_name = models.CharField(max_length=255, blank=True, null=True)
    contact_no = models.CharField(max_length=50, blank=True, null=True)
    address = models.TextField(blank=True, null=True)
    remarks = models.TextField(blank=True, null=True)
    type = models.CharField(max_length=20, choices=CustomerType.choices, default=CustomerType.CUSTOMER)
    status = models.CharField(max_length=20, choices=PartyStatus.choices, default=PartyStatus.ACTIVE)

    created_by = models.PositiveIntegerField(null=True, blank=True)
    updated_by = models.PositiveIntegerField(null=True, blank=True)
    deleted_by = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        db_table = 'customers'
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.unique_id} - {self.company_name}"


def validate_template_data(data):
    """
    ``template_data`` must look like ``{"inputs": [...], "outputs": [...]}``
    with both lists non-empty and every line carrying item_type, fk_id and
    a positive qty with at most 2 decimal places.
    """
    if not isinstance(data, dict):
        raise ValidationError('template_data must be an object with inputs and outputs')
    for side in ('inputs', 'outputs'):
        lines = data.get(side)
        if not isinstance(lines, list) or not lines:
            raise ValidationError(f'template_data.{side} must be a non-empty list')
        for index, line in enumerate(lines):
            if not isinstance(line, dict):
                raise ValidationError(f'template_data.{side}[{index}] must be an object')
            if line.get('item_type') not in ItemType.values:
                raise ValidationError(f'template_data.{side}[{index}].item_type must be MATERIAL or PRODUCT')
            if line.get('fk_id') in (None, ''):
                raise ValidationError(f'template_data.{side}[{index}].fk_id is required')
            try:
                qty = Decimal(str(line.get('qty')))
            except (InvalidOperation, TypeError, ValueError):
                raise ValidationError(f'template_data.{side}[{index}].qty must be a number')
            if not qty.is_finite():
                raise ValidationError(f'template_data.{side}[{index}].qty must be a number')
            if qty <= 0:
                raise ValidationError(f'template_data.{side}[{index}].qty must be greater than zero')
            if qty != qty.quantize(Decimal('0.01')):
                raise ValidationError(f'template_data.{side}[{index}].qty cannot have more than 2 decimal places')


class ConversionTemplate(models.Model):
    """
    Recipe converting a set of input items into a set of output items,
    for one unit of production.
    """

    class Status(models.TextChoices):
        ACTIVE = 'ACTIVE', 'Active'
        INACTIVE = 'INACTIVE', 'Inactive'
        ARCHIVED = 'ARCHIVED', 'Archived'

    template_name = models.CharField(max_length=255, unique=True)
    description = models.TextField(blank=True, null=True)
    template_data = models.JSONField(validators=[validate_template_data])
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)

    created_by = models.PositiveIntegerField(null=True, blank=True)
    updated_by = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'conversion_templates'
        ordering = ['template_name']

    def __str__(self):
        return self.template_name

    @property
    def inputs(self):
        return (self.template_data or {}).get('inputs', [])

    @property
    def outputs(self):
        return (self.template_data or {}).get('outputs', [])


class ConversionRecord(models.Model):
    """One executed template within a production run."""

    class Status(models.TextChoices):
        PENDING = 'PENDING', 'Pending'
        COMPLETED = 'COMPLETED', 'Completed'
        REJECTED = 'REJECTED', 'Rejected'
        ROLLED_BACK = 'ROLLED_BACK', 'Rolled Back'

    conversion_ref = models.CharField(max_length=100, unique=True)
    production_ref = models.CharField(max_length=100, db_index=True)
    template = models.ForeignKey(
        ConversionTemplate,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='records',
    )
    template_name = models.CharField(max_length=255)
    quantity = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('1.00'))
    inputs = models.JSONField(default=list)
    outputs = models.JSONField(default=list)
    total_input_cost = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.COMPLETED)

    created_by = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = 'conversion_records'
        ordering = ['-created_at', '-id']

    def __str__(self):
        return self.conversion_ref
