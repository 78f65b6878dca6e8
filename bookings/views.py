import logging

from django.contrib.auth import get_user_model
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response

from core.dates import parse_date, request_timezone
from core.exceptions import NotFoundError
from core.utils import client_ip
from rewards.services import RewardService
from rooms.permissions import IsAdminUser, IsAuthenticated
from .models import Booking
from .serializers import BookingCreateSerializer, BookingSerializer, BookingStatusSerializer
from .services import BookingService

logger = logging.getLogger(__name__)

User = get_user_model()


class BookingViewSet(viewsets.ViewSet):
    """
    ViewSet для бронирований
    """
    lookup_value_regex = r'\d+'

    def get_permissions(self):
        if self.action in ['destroy', 'update_status']:
            permission_classes = [IsAdminUser]
        else:
            permission_classes = [IsAuthenticated]
        return [permission() for permission in permission_classes]

    def _visible_bookings(self, request):
        queryset = Booking.objects.select_related('room', 'space_type', 'user')
        if request.user.role != 'admin':
            queryset = queryset.filter(user=request.user)
        return queryset

    def _get_booking(self, request, **lookup):
        booking = self._visible_bookings(request).filter(**lookup).first()
        if booking is None:
            raise NotFoundError('Booking not found')
        return booking

    def list(self, request):
        """
        GET /bookings - все бронирования для админа (?date=YYYY-MM-DD), свои для пользователя
        """
        # Только проверка заголовка X-Timezone: даты бронирований календарные
        request_timezone(request)
        queryset = self._visible_bookings(request)

        date_param = request.query_params.get('date')
        if date_param:
            queryset = queryset.filter(start_date=parse_date(date_param, 'date'))

        return Response(BookingSerializer(queryset, many=True).data)

    def retrieve(self, request, pk=None):
        """
        GET /bookings/{id} - детали бронирования
        """
        booking = self._get_booking(request, pk=pk)
        return Response(BookingSerializer(booking).data)

    def create(self, request):
        """
        POST /bookings - создание бронирования
        """
        # Только проверка заголовка X-Timezone: даты бронирований календарные
        request_timezone(request)
        serializer = BookingCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data

        user = request.user
        # Администратор может бронировать от имени пользователя
        if data.get('userId') and request.user.role == 'admin':
            user = User.objects.filter(pk=data['userId']).first()
            if user is None:
                raise NotFoundError('User not found')

        booking = BookingService.create_booking(
            user=user,
            room=data['roomId'],
            start_date=data['start_date'],
            end_date=data.get('end_date'),
            slot_request=serializer.slot_request(),
            space_type=data.get('spaceTypeId'),
            guests=data['guests'],
            total_amount=data['totalAmount'],
            service_fee_and_tax=data['serviceFeeAndTax'],
            status=data['status'],
            use_reward_points=data['useRewardPoints'],
            points_to_use=data['pointsToUse'],
            extra_amenity=data.get('extraAmenity'),
            ip_address=client_ip(request),
        )

        reward_settings = RewardService.get_settings()
        response_data = BookingSerializer(booking).data
        response_data.update({
            'rewardPointsEarned': booking.reward_points_earned,
            'rewardPointsUsed': booking.reward_points_used,
            'minAmountForPoints': str(reward_settings.min_booking_amount_for_points),
            'pointToCurrencyRate': reward_settings.point_to_currency_rate,
            'pointsPerBooking': reward_settings.points_per_booking,
        })
        return Response(response_data, status=status.HTTP_201_CREATED)

    def destroy(self, request, pk=None):
        """
        DELETE /bookings/{id} - удаление с освобождением слотов
        """
        BookingService.delete_booking(pk)
        return Response(
            {'message': 'Booking deleted and slots released successfully'},
            status=status.HTTP_200_OK
        )

    @action(detail=True, methods=['put'], url_path='status')
    def update_status(self, request, pk=None):
        """
        PUT /bookings/{id}/status - смена статуса без побочных эффектов
        """
        serializer = BookingStatusSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        booking = BookingService.update_status(pk, serializer.validated_data['status'])
        return Response(BookingSerializer(booking).data)

    @action(detail=False, methods=['post'], url_path=r'(?P<booking_id>M\d{8})/cancel')
    def cancel(self, request, booking_id=None):
        """
        POST /bookings/{booking_id}/cancel - отмена по внешнему коду
        """
        # Чужое бронирование для пользователя не существует
        self._get_booking(request, booking_id=booking_id)
        booking = BookingService.cancel_booking(booking_id)
        return Response({
            'message': 'Booking cancelled successfully',
            'booking': BookingSerializer(booking).data,
        })
