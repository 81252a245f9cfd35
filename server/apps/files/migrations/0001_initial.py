import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='StoredObject',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('file', models.FileField(help_text='Path in storage: {user_id}/folder/file.ext', max_length=1024, upload_to='')),
                ('size_bytes', models.BigIntegerField(help_text='Object size in bytes')),
                ('mime_type', models.CharField(max_length=255)),
                ('checksum_sha256', models.CharField(db_index=True, help_text='SHA256 hash for integrity verification', max_length=64)),
                ('metadata', models.JSONField(blank=True, default=dict, help_text='Free-form metadata supplied by the uploader')),
                ('last_version_number', models.PositiveIntegerField(default=0)),
                ('uploaded_at', models.DateTimeField(auto_now_add=True)),
                ('modified_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='stored_objects', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Stored object',
                'verbose_name_plural': 'Stored objects',
                'ordering': ['-uploaded_at'],
                'indexes': [
                    models.Index(fields=['user', 'file'], name='files_user_file_idx'),
                    models.Index(fields=['user', '-uploaded_at'], name='files_user_recent_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('user', 'file'), name='files_user_path_unique'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ChunkUploadSession',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('session_id', models.CharField(db_index=True, max_length=32, unique=True)),
                ('file_name', models.CharField(max_length=255)),
                ('declared_size', models.BigIntegerField()),
                ('content_type', models.CharField(max_length=255)),
                ('target_path', models.CharField(blank=True, help_text='Folder path under the user root, may be empty', max_length=1024)),
                ('total_chunks', models.PositiveIntegerField()),
                ('received_indices', models.JSONField(blank=True, default=list)),
                ('status', models.CharField(choices=[('initialized', 'Initialized'), ('receiving', 'Receiving'), ('complete', 'Complete')], default='initialized', max_length=16)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('last_activity', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='upload_sessions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Chunk upload session',
                'verbose_name_plural': 'Chunk upload sessions',
                'ordering': ['-created_at'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('total_chunks__gte', 1)), name='upload_total_chunks_positive'),
                ],
            },
        ),
    ]
