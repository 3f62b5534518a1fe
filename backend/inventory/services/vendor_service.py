"""
Vendor Service

Vendor registry and the one-time move of supplier customers into it.
"""

import logging
from typing import Dict

from django.db import transaction
from django.utils import timezone

from inventory.models import Vendor
from utils.constants import VENDOR_ID_PREFIX, VENDOR_ID_WIDTH

logger = logging.getLogger(__name__)

MIGRATED_CUSTOMER_TYPES = ('supplier', 'both')
COPIED_FIELDS = (
    'unique_id', 'company_name', 'supplier_name', 'contact_no', 'address', 'remarks',
    'status', 'created_by', 'updated_by', 'deleted_by', 'created_at', 'updated_at', 'deleted_at',
)


def format_vendor_id(number):
    return f"{VENDOR_ID_PREFIX}{number:0{VENDOR_ID_WIDTH}d}"


class VendorService:
    """Vendor CRUD helpers used by the vendor endpoints."""

    @staticmethod
    def next_unique_id() -> str:
        """VEND0001 style id, numbered after the last vendor row."""
        last = Vendor.objects.order_by('-id').first()
        number = last.id + 1 if last else 1
        unique_id = format_vendor_id(number)
        # Migrated vendors keep their customer ids, so the numbered id may already be taken
        while Vendor.objects.filter(unique_id=unique_id).exists():
            number += 1
            unique_id = format_vendor_id(number)
        return unique_id

    @staticmethod
    def create(data: Dict, created_by: int = None) -> Vendor:
        with transaction.atomic():
            vendor = Vendor.objects.create(
                unique_id=VendorService.next_unique_id(),
                company_name=data['company_name'],
                supplier_name=data.get('supplier_name'),
                contact_no=data.get('contact_no'),
                address=data.get('address'),
                remarks=data.get('remarks'),
                status=data.get('status') or Vendor._meta.get_field('status').default,
                created_by=created_by,
            )
        logger.info(f"Created vendor {vendor.unique_id} ({vendor.company_name})")
        return vendor

    @staticmethod
    def is_unique_id_available(unique_id: str) -> bool:
        return not Vendor.objects.filter(unique_id=unique_id).exists()

    @staticmethod
    def soft_delete(vendor: Vendor, deleted_by: int = None) -> Vendor:
        vendor.deleted_at = timezone.now()
        vendor.deleted_by = deleted_by
        vendor.save(update_fields=['deleted_at', 'deleted_by', 'updated_at'])
        logger.info(f"Deleted vendor {vendor.unique_id}")
        return vendor


def migrate_customers_to_vendors(customer_model, vendor_model) -> int:
    """
    Copy every live supplier/both customer into the vendor table and
    soft-delete the source customers.

    Takes the model classes so the same code runs against migration state
    models. Customers whose unique_id is already a vendor are not copied
    again. Returns the number of vendors created.
    """
    suppliers = customer_model.objects.filter(
        type__in=MIGRATED_CUSTOMER_TYPES, deleted_at__isnull=True
    ).order_by('id')

    existing = set(vendor_model.objects.values_list('unique_id', flat=True))
    vendors = []
    for customer in suppliers:
        if customer.unique_id in existing:
            continue
        vendors.append(vendor_model(**{field: getattr(customer, field) for field in COPIED_FIELDS}))
        existing.add(customer.unique_id)

    created = vendor_model.objects.bulk_create(vendors)
    # auto_now_add/auto_now overwrite the copied timestamps on insert
    for vendor in created:
        source = suppliers.get(unique_id=vendor.unique_id)
        vendor_model.objects.filter(unique_id=vendor.unique_id).update(
            created_at=source.created_at, updated_at=source.updated_at
        )

    suppliers.update(deleted_at=timezone.now())
    logger.info(f"Migrated {len(created)} supplier customers to vendors")
    return len(created)
