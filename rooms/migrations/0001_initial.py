import django.core.validators
import django.db.models.deletion
import rooms.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='SpaceType',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255, unique=True, verbose_name='Название типа')),
                ('description', models.TextField(blank=True, default='', verbose_name='Описание')),
                ('is_active', models.BooleanField(default=True, verbose_name='Активен')),
                ('allowed_slots', models.JSONField(default=list, help_text='Упорядоченный список меток, например ["09:00AM", "10:00AM"]', validators=[rooms.validators.SlotLabelsValidator()], verbose_name='Допустимые слоты')),
                ('slot_behavior', models.CharField(choices=[('consecutive', 'Consecutive'), ('full-block', 'Full block')], default='consecutive', max_length=20, verbose_name='Поведение слотов')),
                ('slot_duration', models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)], verbose_name='Длительность слота (часы)')),
                ('last_booked_at', models.DateTimeField(blank=True, null=True, verbose_name='Последнее бронирование')),
                ('bookings_count', models.PositiveIntegerField(default=0, verbose_name='Количество бронирований')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Тип пространства',
                'verbose_name_plural': 'Типы пространств',
                'db_table': 'space_types',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Room',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255, verbose_name='Название комнаты')),
                ('description', models.TextField(blank=True, default='', verbose_name='Описание')),
                ('location', models.CharField(max_length=500, verbose_name='Местоположение')),
                ('capacity', models.IntegerField(default=1, help_text='Сколько бронирований может занимать один слот в один день', validators=[django.core.validators.MinValueValidator(1)], verbose_name='Вместимость')),
                ('price_per_hour', models.DecimalField(decimal_places=2, default=0, max_digits=10, verbose_name='Цена за час')),
                ('amenities', models.JSONField(blank=True, default=list, help_text='Список {"name", "price", "isFree"}', verbose_name='Удобства')),
                ('is_active', models.BooleanField(default=True, help_text='Неактивные комнаты скрыты из поиска', verbose_name='Активна')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Дата создания')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Дата обновления')),
                ('space_type', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='rooms', to='rooms.spacetype', verbose_name='Тип пространства')),
            ],
            options={
                'verbose_name': 'Комната',
                'verbose_name_plural': 'Комнаты',
                'db_table': 'rooms',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['is_active', 'created_at'], name='rooms_active_created_idx'),
                    models.Index(fields=['location'], name='rooms_location_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='RoomAvailability',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField(verbose_name='Дата')),
                ('available_size', models.PositiveIntegerField(verbose_name='Потолок бронирований на день')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('room', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='availability', to='rooms.room', verbose_name='Комната')),
            ],
            options={
                'verbose_name': 'Доступность комнаты',
                'verbose_name_plural': 'Доступность комнат',
                'db_table': 'room_availability',
                'ordering': ['date'],
                'constraints': [
                    models.UniqueConstraint(fields=('room', 'date'), name='unique_room_date'),
                ],
            },
        ),
        migrations.CreateModel(
            name='BookedSlot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('label', models.CharField(max_length=50, verbose_name='Метка слота')),
                ('count', models.PositiveIntegerField(default=0, verbose_name='Занято')),
                ('availability', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='slots', to='rooms.roomavailability')),
            ],
            options={
                'db_table': 'room_booked_slots',
                'constraints': [
                    models.UniqueConstraint(fields=('availability', 'label'), name='unique_availability_slot'),
                ],
            },
        ),
    ]
