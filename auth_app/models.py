from django.contrib.auth.models import AbstractUser, UserManager as DjangoUserManager
from django.db import models


class UserManager(DjangoUserManager):
    """Позволяет создавать пользователей без username (берется email)"""

    def create_user(self, username=None, email=None, password=None, **extra_fields):
        return super().create_user(username or email, email, password, **extra_fields)

    def create_superuser(self, username=None, email=None, password=None, **extra_fields):
        extra_fields.setdefault('role', 'admin')
        return super().create_superuser(username or email, email, password, **extra_fields)


class User(AbstractUser):
    ROLE_CHOICES = (
        ('user', 'user'),
        ('admin', 'admin')
    )
    email = models.EmailField(unique=True)
    phone_number = models.CharField(max_length=20, blank=True, default='')
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default='user')

    objects = UserManager()

    @property
    def is_admin(self):
        return self.role == 'admin'

    def __str__(self):
        return self.username
