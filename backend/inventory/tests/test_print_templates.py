"""
Tests for print template storage.

Endpoints:
- GET  /api/print/templates
- POST /api/print/templates/save
- POST /api/print/templates/{type}/save-fields
"""

import json
import shutil
import tempfile
from pathlib import Path

from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient


class PrintTemplateAPITestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.tmpdir = Path(tempfile.mkdtemp())
        self.path = self.tmpdir / 'data' / 'printTemplates.json'
        self.override = override_settings(PRINT_TEMPLATES_PATH=self.path)
        self.override.enable()

    def tearDown(self):
        self.override.disable()
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def write(self, data):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding='utf-8')

    def test_get_missing_file(self):
        response = self.client.get(reverse('print-templates'))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(response.data['success'])

    def test_get_templates(self):
        self.write({'templates': {'color': {}}, 'documentTypes': {'invoice': {}}})
        response = self.client.get(reverse('print-templates'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('color', response.data['data']['templates'])

    def test_save_keeps_other_keys(self):
        """Test saving replaces templates and documentTypes only"""
        self.write({'templates': {'old': {}}, 'documentTypes': {}, 'version': 3})

        response = self.client.post(
            reverse('print-templates-save'),
            {'templates': {'simple': {'id': 'simple'}}, 'documentTypes': {'receipt': {'name': 'Receipt'}}},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        stored = json.loads(self.path.read_text(encoding='utf-8'))
        self.assertEqual(stored['version'], 3)
        self.assertEqual(list(stored['templates']), ['simple'])

    def test_save_creates_file(self):
        response = self.client.post(
            reverse('print-templates-save'),
            {'templates': {'simple': {}}, 'documentTypes': {'receipt': {}}},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(self.path.exists())

    def test_save_requires_both_parts(self):
        response = self.client.post(reverse('print-templates-save'), {'templates': {'simple': {}}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(self.path.exists())

    def test_save_fields_on_new_file(self):
        """Test field visibility can be saved before the file exists"""
        response = self.client.post(
            reverse('print-template-save-fields', args=['color']),
            {'fieldVisibility': {'showLogo': True, 'showTax': False}},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['defaultFields'], {'showLogo': True, 'showTax': False})
        stored = json.loads(self.path.read_text(encoding='utf-8'))
        self.assertIn('simple', stored['templates'])
        self.assertIn('documentTypes', stored)

    def test_save_fields_unknown_template(self):
        response = self.client.post(
            reverse('print-template-save-fields', args=['neon']),
            {'fieldVisibility': {}},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
