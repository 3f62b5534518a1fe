"""
Print template storage.

Printable document layouts live in a single JSON file
(settings.PRINT_TEMPLATES_PATH) shared with the frontend.
"""

import copy
import json
import logging
from pathlib import Path

from django.conf import settings
from rest_framework.exceptions import NotFound, ValidationError

from utils.constants import DEFAULT_DOCUMENT_TYPES, DEFAULT_PRINT_TEMPLATES

logger = logging.getLogger(__name__)


def _path() -> Path:
    return Path(settings.PRINT_TEMPLATES_PATH)


def _write(data):
    path = _path()
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + '.tmp')
    tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding='utf-8')
    tmp.replace(path)


def default_structure():
    return {
        'templates': copy.deepcopy(DEFAULT_PRINT_TEMPLATES),
        'documentTypes': copy.deepcopy(DEFAULT_DOCUMENT_TYPES),
    }


class PrintTemplateService:

    @staticmethod
    def load():
        """
        Current file content.

        Raises:
            NotFound: the file does not exist yet
        """
        path = _path()
        try:
            return json.loads(path.read_text(encoding='utf-8'))
        except FileNotFoundError:
            raise NotFound('Print templates file not found')

    @staticmethod
    def save(templates, document_types):
        """Merge templates and documentTypes into the file, keeping other keys."""
        if not templates or not document_types:
            raise ValidationError('Missing templates or documentTypes')
        try:
            current = PrintTemplateService.load()
        except NotFound:
            logger.warning("Print templates file not found, creating a new one")
            current = {}
        data = {**current, 'templates': templates, 'documentTypes': document_types}
        _write(data)
        logger.info("Print templates saved")
        return data

    @staticmethod
    def save_fields(template_type, field_visibility):
        """Set ``defaultFields`` of one print template."""
        if field_visibility is None:
            raise ValidationError('Missing fieldVisibility')
        try:
            data = PrintTemplateService.load()
        except NotFound:
            logger.info("Creating new print templates file")
            data = default_structure()

        templates = data.get('templates') or {}
        if template_type not in templates:
            raise ValidationError(f'Template {template_type} not found')

        templates[template_type]['defaultFields'] = field_visibility
        _write(data)
        logger.info(f"Saved field visibility for print template {template_type}")
        return templates[template_type]
