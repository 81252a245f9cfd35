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
            name='WebhookSubscription',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('url', models.URLField(max_length=2048)),
                ('secret', models.CharField(blank=True, default='', help_text='HMAC-SHA256 signing secret, empty disables signing', max_length=255)),
                ('active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='webhook_subscriptions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Webhook subscription',
                'verbose_name_plural': 'Webhook subscriptions',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='WebhookEventSubscription',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('event', models.CharField(choices=[('file.created', 'File created'), ('file.updated', 'File updated'), ('file.deleted', 'File deleted'), ('file.accessed', 'File accessed'), ('folder.created', 'Folder created'), ('folder.updated', 'Folder updated'), ('folder.deleted', 'Folder deleted'), ('version.created', 'Version created')], max_length=32)),
                ('subscription', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='events', to='webhooks.webhooksubscription')),
            ],
            options={
                'verbose_name': 'Subscribed event',
                'verbose_name_plural': 'Subscribed events',
                'constraints': [
                    models.UniqueConstraint(fields=('subscription', 'event'), name='webhooks_subscription_event_unique'),
                ],
            },
        ),
        migrations.CreateModel(
            name='WebhookDeliveryRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('event', models.CharField(choices=[('file.created', 'File created'), ('file.updated', 'File updated'), ('file.deleted', 'File deleted'), ('file.accessed', 'File accessed'), ('folder.created', 'Folder created'), ('folder.updated', 'Folder updated'), ('folder.deleted', 'Folder deleted'), ('version.created', 'Version created')], max_length=32)),
                ('payload', models.JSONField()),
                ('status_code', models.PositiveSmallIntegerField(default=0)),
                ('response', models.TextField(blank=True, default='', help_text='Response summary, truncated to 1000 characters')),
                ('success', models.BooleanField(default=False)),
                ('attempt', models.PositiveSmallIntegerField(default=1)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('subscription', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='deliveries', to='webhooks.webhooksubscription')),
            ],
            options={
                'verbose_name': 'Webhook delivery',
                'verbose_name_plural': 'Webhook deliveries',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['subscription', '-created_at'], name='webhooks_delivery_recent_idx'),
                ],
            },
        ),
    ]
