import logging

from django.core.cache import cache
from django.db.models import ProtectedError
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response

from core.dates import parse_date_range, request_timezone
from .models import Room, SpaceType
from .permissions import IsAdminUser, IsAuthenticated
from .serializers import RoomSerializer, RoomWriteSerializer, SpaceTypeSerializer
from .services import AvailabilityService

logger = logging.getLogger(__name__)

ROOM_LIST_CACHE_KEY = 'active_rooms_list'
ROOM_LIST_TTL = 60


class AdminWriteMixin:
    """Чтение - любому авторизованному, запись - только администратору"""

    admin_actions = ('create', 'update', 'partial_update', 'destroy')

    def get_permissions(self):
        if self.action in self.admin_actions:
            permission_classes = [IsAdminUser]
        else:
            permission_classes = [IsAuthenticated]
        return [permission() for permission in permission_classes]


class SpaceTypeViewSet(AdminWriteMixin, viewsets.ModelViewSet):
    """
    ViewSet для типов пространств
    """
    lookup_value_regex = r'\d+'
    serializer_class = SpaceTypeSerializer

    def get_queryset(self):
        queryset = SpaceType.objects.all()
        if self.request.user.role != 'admin':
            queryset = queryset.filter(is_active=True)
        return queryset

    def perform_create(self, serializer):
        space_type = serializer.save()
        logger.info(f"Создан тип пространства {space_type.name}")

    def destroy(self, request, pk=None):
        """
        DELETE /space-types/{id} - удаление, если у типа нет комнат
        """
        space_type = get_object_or_404(SpaceType, pk=pk)
        try:
            space_type.delete()
        except ProtectedError:
            return Response(
                {'error': 'Space type is used by rooms and cannot be deleted'},
                status=status.HTTP_409_CONFLICT
            )
        cache.delete(ROOM_LIST_CACHE_KEY)
        return Response(status=status.HTTP_204_NO_CONTENT)


class RoomViewSet(AdminWriteMixin, viewsets.ViewSet):
    """
    ViewSet для управления комнатами
    """
    lookup_value_regex = r'\d+'

    def list(self, request):
        """
        GET /rooms - список активных комнат (?spaceTypeId= для фильтра)
        """
        space_type_id = request.query_params.get('spaceTypeId')
        if space_type_id:
            if not space_type_id.isdigit():
                return Response({'error': 'Invalid spaceTypeId'}, status=status.HTTP_400_BAD_REQUEST)
            rooms = Room.objects.filter(is_active=True, space_type_id=space_type_id).select_related('space_type')
            return Response(RoomSerializer(rooms, many=True).data)

        cached_data = cache.get(ROOM_LIST_CACHE_KEY)
        if cached_data is not None:
            return Response(cached_data)

        rooms = Room.objects.filter(is_active=True).select_related('space_type')
        data = RoomSerializer(rooms, many=True).data
        cache.set(ROOM_LIST_CACHE_KEY, data, ROOM_LIST_TTL)
        return Response(data)

    def retrieve(self, request, pk=None):
        """
        GET /rooms/{id} - детали комнаты
        """
        room = get_object_or_404(Room.objects.select_related('space_type'), pk=pk)
        if not room.is_active and request.user.role != 'admin':
            return Response(
                {'error': 'Room not found or inactive'},
                status=status.HTTP_404_NOT_FOUND
            )
        return Response(RoomSerializer(room).data)

    def create(self, request):
        """
        POST /rooms - создание комнаты
        """
        serializer = RoomWriteSerializer(data=request.data)
        if serializer.is_valid():
            room = serializer.save()
            cache.delete(ROOM_LIST_CACHE_KEY)
            logger.info(f"Создана комната {room.pk} ({room.name})")
            return Response(RoomSerializer(room).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    def update(self, request, pk=None):
        """
        PUT /rooms/{id} - полное обновление комнаты
        """
        return self._update(request, pk, partial=False)

    def partial_update(self, request, pk=None):
        """
        PATCH /rooms/{id} - частичное обновление комнаты
        """
        return self._update(request, pk, partial=True)

    def _update(self, request, pk, partial):
        room = get_object_or_404(Room, pk=pk)
        old_capacity = room.capacity
        serializer = RoomWriteSerializer(room, data=request.data, partial=partial)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        room = serializer.save()
        if room.capacity != old_capacity:
            AvailabilityService.sync_capacity(room)
        cache.delete(ROOM_LIST_CACHE_KEY)
        return Response(RoomSerializer(room).data)

    def destroy(self, request, pk=None):
        """
        DELETE /rooms/{id} - деактивация комнаты
        """
        room = get_object_or_404(Room, pk=pk)

        # Бронирования ссылаются на комнату, поэтому только деактивируем
        room.is_active = False
        room.save(update_fields=['is_active', 'updated_at'])
        cache.delete(ROOM_LIST_CACHE_KEY)

        return Response(
            {'message': 'Room deactivated'},
            status=status.HTTP_200_OK
        )

    @action(detail=True, methods=['get'], url_path='availability')
    def availability(self, request, pk=None):
        """
        GET /rooms/{id}/availability?startDate=YYYY-MM-DD&endDate=YYYY-MM-DD
        Доступность комнаты по дням и слотам
        """
        room = get_object_or_404(Room.objects.select_related('space_type'), pk=pk)
        tz = request_timezone(request)

        start_param = request.query_params.get('startDate') or timezone.now().astimezone(tz).date().isoformat()
        end_param = request.query_params.get('endDate') or start_param
        start_date, end_date = parse_date_range(start_param, end_param)

        data = AvailabilityService.get_room_availability(room, start_date, end_date)
        data['range'] = {'startDate': start_date.isoformat(), 'endDate': end_date.isoformat()}
        return Response(data)
