"""
Move supplier customers into the vendor table.

Every live customer of type 'supplier' or 'both' becomes a vendor with
the same unique_id, and the customer row is soft-deleted. Reversing only
removes the copied vendors; the customers stay soft-deleted.
"""

from django.db import migrations


def forwards(apps, schema_editor):
    from inventory.services.vendor_service import migrate_customers_to_vendors

    migrate_customers_to_vendors(apps.get_model('inventory', 'Customer'), apps.get_model('inventory', 'Vendor'))


def backwards(apps, schema_editor):
    Customer = apps.get_model('inventory', 'Customer')
    Vendor = apps.get_model('inventory', 'Vendor')
    migrated_ids = Customer.objects.filter(
        type__in=('supplier', 'both'), deleted_at__isnull=False
    ).values_list('unique_id', flat=True)
    Vendor.objects.filter(unique_id__in=list(migrated_ids)).delete()


class Migration(migrations.Migration):

    dependencies = [
        ('inventory', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(forwards, backwards),
    ]
