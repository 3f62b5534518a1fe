"""
Constants used throughout the application.
"""

# Item types tracked by the stock ledger
ITEM_TYPE_LABELS = {
    'MATERIAL': 'Materials',
    'PRODUCT': 'Products',
}

# Movement Direction Colors
# Using Tailwind CSS color palette for consistency
MOVEMENT_COLORS = {
    'IN': '#10B981',     # Green-500 - Stock added
    'OUT': '#EF4444',    # Red-500 - Stock consumed
}

# Movement statuses that count towards balances and summaries
POSTED_STATUSES = ('ACTIVE', 'COMPLETED')

# Production reference prefix (PROD-YYYYMMDD-XXXXXXXXX)
PRODUCTION_REF_PREFIX = 'PROD'

# Vendor unique id format (VEND0001)
VENDOR_ID_PREFIX = 'VEND'
VENDOR_ID_WIDTH = 4

# Default print template file structure, used when the file does not exist yet
DEFAULT_DOCUMENT_TYPES = {
    'bill': {'name': 'Bill', 'icon': '📋', 'fieldsList': []},
    'grn': {'name': 'GRN - Goods Receipt Note', 'icon': '📦', 'fieldsList': []},
    'wastage': {'name': 'Wastage', 'icon': '♻️', 'fieldsList': []},
    'return': {'name': 'Return', 'icon': '↩️', 'fieldsList': []},
}

# Print layouts created together with the document types when the file is missing
DEFAULT_PRINT_TEMPLATES = {
    'color': {
        'id': 'color',
        'name': 'Color Invoice',
        'icon': '🎨',
        'description': 'Colorful invoice template with formatted layout',
        'type': 'color',
        'defaultFields': {},
    },
    'simple': {
        'id': 'simple',
        'name': 'Simple Receipt',
        'icon': '📄',
        'description': 'Plain text receipt template for basic printing',
        'type': 'simple',
        'defaultFields': {},
    },
}
