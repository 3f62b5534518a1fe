from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('inventory', '0002_migrate_vendors_from_customer'),
    ]

    operations = [
        migrations.CreateModel(
            name='StockItemLock',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('item_type', models.CharField(choices=[('MATERIAL', 'Material'), ('PRODUCT', 'Product')], max_length=20)),
                ('fk_id', models.PositiveIntegerField()),
            ],
            options={
                'db_table': 'stock_item_locks',
                'constraints': [
                    models.UniqueConstraint(fields=('item_type', 'fk_id'), name='uniq_stock_item_lock'),
                ],
            },
        ),
    ]
