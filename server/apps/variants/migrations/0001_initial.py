import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('files', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='DerivedAsset',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('variant_key', models.CharField(max_length=64)),
                ('width', models.PositiveIntegerField()),
                ('height', models.PositiveIntegerField()),
                ('format', models.CharField(max_length=8)),
                ('quality', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('options', models.JSONField(blank=True, default=dict)),
                ('path', models.CharField(max_length=1024)),
                ('size_bytes', models.BigIntegerField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('stored_object', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='variants', to='files.storedobject')),
            ],
            options={
                'verbose_name': 'Derived asset',
                'verbose_name_plural': 'Derived assets',
                'ordering': ['stored_object', 'variant_key'],
                'constraints': [
                    models.UniqueConstraint(fields=('stored_object', 'variant_key'), name='variants_object_key_unique'),
                ],
            },
        ),
    ]
