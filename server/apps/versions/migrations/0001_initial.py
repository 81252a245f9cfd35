import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('files', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='ObjectVersion',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('version_number', models.PositiveIntegerField()),
                ('path', models.CharField(help_text='Path of the snapshot in storage', max_length=1024)),
                ('size_bytes', models.BigIntegerField()),
                ('checksum_sha256', models.CharField(max_length=64)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('stored_object', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='versions', to='files.storedobject')),
            ],
            options={
                'verbose_name': 'Object version',
                'verbose_name_plural': 'Object versions',
                'ordering': ['-version_number'],
                'constraints': [
                    models.UniqueConstraint(fields=('stored_object', 'version_number'), name='versions_object_number_unique'),
                ],
            },
        ),
    ]
