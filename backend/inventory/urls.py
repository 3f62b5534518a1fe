from django.urls import path

from . import views

urlpatterns = [
    # Stock ledger
    path('stock/add', views.stock_add, name='stock-add'),
    path('stock/getAll', views.stock_list, name='stock-list'),
    path('stock/get/<int:pk>', views.stock_detail, name='stock-detail'),
    path('stock/remove/<int:pk>', views.stock_remove, name='stock-remove'),
    path('stock/current', views.stock_current, name='stock-current'),
    path('stock/statement', views.stock_statement, name='stock-statement'),
    path('stock/export/xlsx', views.stock_export_xlsx, name='stock-export-xlsx'),

    # Monthly summaries
    path('stock/monthly-summaries', views.summary_list, name='summary-list'),
    path('stock/monthly-summaries/generate', views.summary_generate, name='summary-generate'),
    path('stock/monthly-summaries/generate-from-last-month', views.summary_generate_from_last_month,
         name='summary-generate-from-last-month'),
    path('stock/monthly-summaries/generate-item', views.summary_generate_item, name='summary-generate-item'),
    path('stock/monthly-summaries/generate-month-to-date', views.summary_generate_month_to_date,
         name='summary-generate-month-to-date'),
    path('stock/monthly-summaries/range', views.summary_range_view, name='summary-range'),
    path('stock/monthly-summaries/export/xlsx', views.summary_export_xlsx, name='summary-export-xlsx'),
    path('stock/monthly-summaries/export/csv', views.summary_export_csv, name='summary-export-csv'),
    path('stock/monthly-summaries/export/pdf', views.summary_export_pdf, name='summary-export-pdf'),

    # Production
    path('production/templates', views.production_templates, name='production-templates'),
    path('production/calculate', views.production_calculate, name='production-calculate'),
    path('production/execute', views.production_execute, name='production-execute'),
    path('production/history', views.production_history, name='production-history'),
    path('conversion/templates', views.conversion_template_list, name='conversion-template-list'),
    path('conversion/templates/<int:pk>', views.conversion_template_detail, name='conversion-template-detail'),
    path('conversion/records', views.conversion_record_list, name='conversion-record-list'),

    # Vendors
    path('vendor/add', views.vendor_add, name='vendor-add'),
    path('vendor/checkUnique/<str:unique_id>', views.vendor_check_unique, name='vendor-check-unique'),
    path('vendor/getAll', views.vendor_list, name='vendor-list'),
    path('vendor/get/<int:pk>', views.vendor_detail, name='vendor-detail'),
    path('vendor/put/<int:pk>', views.vendor_update, name='vendor-update'),
    path('vendor/delete/<int:pk>', views.vendor_delete, name='vendor-delete'),

    # Print templates
    path('print/templates', views.print_templates, name='print-templates'),
    path('print/templates/save', views.print_templates_save, name='print-templates-save'),
    path('print/templates/<str:template_type>/save-fields', views.print_template_save_fields,
         name='print-template-save-fields'),
]
