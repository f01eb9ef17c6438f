import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Resource',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('kind', models.CharField(choices=[('supplier', 'Supplier'), ('venue', 'Venue')], max_length=16)),
                ('owner_id', models.CharField(db_index=True, help_text='User id of the supplier or venue owner, as issued by the identity service.', max_length=64)),
                ('name', models.CharField(max_length=255)),
                ('capacity', models.PositiveIntegerField(blank=True, help_text='Maximum number of guests (venues).', null=True)),
                ('slot_duration', models.DurationField(blank=True, help_text='Length of one booking when only a start is given (suppliers).', null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Resource',
                'verbose_name_plural': 'Resources',
                'ordering': ['name'],
                'indexes': [models.Index(fields=['kind', 'is_active'], name='resource_kind_active_idx')],
            },
        ),
    ]
