"""
Tests for the vendor registry and the customer to vendor migration.

Endpoints:
- POST   /api/vendor/add
- GET    /api/vendor/checkUnique/{unique_id}
- GET    /api/vendor/getAll
- GET    /api/vendor/get/{id}
- PUT    /api/vendor/put/{id}
- DELETE /api/vendor/delete/{id}
"""

from datetime import datetime

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from inventory.models import Customer, Vendor
from inventory.services.vendor_service import VendorService, migrate_customers_to_vendors


class VendorAPITestCase(TestCase):

    def setUp(self):
        self.client = APIClient()

    def test_add_vendor(self):
        """Ensure we can add a vendor and get a generated id"""
        response = self.client.post(
            reverse('vendor-add'),
            {'company_name': '  Acme Mills ', 'contact_no': '0700000000'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['unique_id'], 'VEND0001')
        self.assertEqual(response.data['data']['company_name'], 'Acme Mills')

    def test_add_vendor_requires_company_name(self):
        response = self.client.post(reverse('vendor-add'), {'company_name': ' '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('company_name', response.data['errors'])

    def test_check_unique(self):
        Vendor.objects.create(unique_id='VEND0007', company_name='Taken')

        taken = self.client.get(reverse('vendor-check-unique', args=['VEND0007']))
        free = self.client.get(reverse('vendor-check-unique', args=['VEND0008']))

        self.assertFalse(taken.data['available'])
        self.assertTrue(free.data['available'])

    def test_list_excludes_deleted(self):
        Vendor.objects.create(unique_id='VEND0001', company_name='Live')
        Vendor.objects.create(unique_id='VEND0002', company_name='Gone', deleted_at=timezone.now())

        response = self.client.get(reverse('vendor-list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([v['company_name'] for v in response.data['data']], ['Live'])
        self.assertEqual(response.data['meta']['total'], 1)

    def test_list_search(self):
        Vendor.objects.create(unique_id='VEND0001', company_name='Acme Mills')
        Vendor.objects.create(unique_id='VEND0002', company_name='Bolt Packaging')
        response = self.client.get(reverse('vendor-list'), {'search': 'bolt'})
        self.assertEqual([v['unique_id'] for v in response.data['data']], ['VEND0002'])

    def test_update_vendor(self):
        vendor = Vendor.objects.create(unique_id='VEND0001', company_name='Acme')
        response = self.client.put(
            reverse('vendor-update', args=[vendor.id]), {'address': 'Industrial Area'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        vendor.refresh_from_db()
        self.assertEqual(vendor.address, 'Industrial Area')
        self.assertEqual(vendor.unique_id, 'VEND0001')

    def test_delete_vendor(self):
        """Test deleted vendors are kept but no longer served"""
        vendor = Vendor.objects.create(unique_id='VEND0001', company_name='Acme')

        response = self.client.delete(reverse('vendor-delete', args=[vendor.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        vendor.refresh_from_db()
        self.assertIsNotNone(vendor.deleted_at)
        response = self.client.get(reverse('vendor-detail', args=[vendor.id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class VendorServiceTests(TestCase):

    def test_next_unique_id_skips_taken_ids(self):
        Vendor.objects.create(unique_id='VEND0002', company_name='Migrated')
        self.assertEqual(VendorService.next_unique_id(), 'VEND0003')


class CustomerMigrationTests(TestCase):

    def setUp(self):
        self.created = timezone.make_aware(datetime(2024, 3, 1, 9, 0))
        self.supplier = Customer.objects.create(unique_id='CUST0001', company_name='Mill Co', type='supplier')
        self.both = Customer.objects.create(unique_id='CUST0002', company_name='Dual Ltd', type='both')
        self.customer = Customer.objects.create(unique_id='CUST0003', company_name='Shop', type='customer')
        self.deleted = Customer.objects.create(
            unique_id='CUST0004', company_name='Old', type='supplier', deleted_at=self.created
        )
        self.duplicate = Customer.objects.create(unique_id='CUST0005', company_name='Dup', type='supplier')
        Vendor.objects.create(unique_id='CUST0005', company_name='Dup')
        Customer.objects.filter(id=self.supplier.id).update(created_at=self.created)

    def test_migrate_suppliers(self):
        """Test live suppliers become vendors and leave the customer list"""
        created = migrate_customers_to_vendors(Customer, Vendor)

        self.assertEqual(created, 2)
        self.assertEqual(
            sorted(Vendor.objects.values_list('unique_id', flat=True)),
            ['CUST0001', 'CUST0002', 'CUST0005'],
        )
        vendor = Vendor.objects.get(unique_id='CUST0001')
        self.assertEqual(vendor.company_name, 'Mill Co')
        self.assertEqual(vendor.created_at, self.created)

        for customer in (self.supplier, self.both, self.duplicate):
            customer.refresh_from_db()
            self.assertIsNotNone(customer.deleted_at)
        self.customer.refresh_from_db()
        self.assertIsNone(self.customer.deleted_at)
        self.assertEqual(list(Customer.objects.alive()), [self.customer])

    def test_migrate_twice(self):
        migrate_customers_to_vendors(Customer, Vendor)
        self.assertEqual(migrate_customers_to_vendors(Customer, Vendor), 0)
