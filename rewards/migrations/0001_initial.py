import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('bookings', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='RewardSetting',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('point_to_currency_rate', models.PositiveIntegerField(default=10, validators=[django.core.validators.MinValueValidator(1)], verbose_name='Баллов за единицу валюты')),
                ('points_per_booking', models.PositiveIntegerField(default=5, validators=[django.core.validators.MinValueValidator(1)], verbose_name='Баллов за бронирование')),
                ('min_booking_amount_for_points', models.DecimalField(decimal_places=2, default=1000, max_digits=12, validators=[django.core.validators.MinValueValidator(0)], verbose_name='Минимальная сумма для начисления')),
                ('max_points_redeem_percentage', models.PositiveIntegerField(default=20, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)], verbose_name='Максимальный процент оплаты баллами')),
                ('points_expiry_days', models.PositiveIntegerField(default=365, help_text='0 - баллы не сгорают', verbose_name='Срок жизни баллов (дни)')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Настройки бонусов',
                'verbose_name_plural': 'Настройки бонусов',
                'db_table': 'reward_settings',
            },
        ),
        migrations.CreateModel(
            name='RewardSettingChange',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('changed_at', models.DateTimeField(auto_now_add=True)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('changes', models.JSONField(default=dict)),
                ('reason', models.CharField(blank=True, default='', max_length=500)),
                ('changed_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
                ('setting', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='change_log', to='rewards.rewardsetting')),
            ],
            options={
                'db_table': 'reward_setting_changes',
                'ordering': ['-changed_at'],
            },
        ),
        migrations.CreateModel(
            name='UserReward',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('total_points', models.PositiveIntegerField(default=0)),
                ('lifetime_earned', models.PositiveIntegerField(default=0)),
                ('lifetime_used', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='reward', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'user_rewards',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='RewardHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('Earned', 'Earned'), ('Used', 'Used'), ('Admin Added', 'Admin Added'), ('Admin Removed', 'Admin Removed'), ('Expired', 'Expired')], max_length=20)),
                ('points', models.IntegerField()),
                ('note', models.CharField(blank=True, default='', max_length=500)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('expires_at', models.DateTimeField(blank=True, null=True)),
                ('expired', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('booking', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to='bookings.booking')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('user_reward', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='history', to='rewards.userreward')),
            ],
            options={
                'db_table': 'reward_history',
                'ordering': ['created_at', 'id'],
                'indexes': [
                    models.Index(fields=['expires_at'], name='reward_hist_expires_idx'),
                    models.Index(fields=['user_reward', 'action'], name='reward_hist_user_action_idx'),
                ],
            },
        ),
    ]
