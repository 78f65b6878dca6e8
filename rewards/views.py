import logging

from django.contrib.auth import get_user_model
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status

from core.exceptions import NotFoundError, ValidationError
from core.utils import client_ip
from rooms.permissions import IsAdminUser, IsAuthenticated
from .serializers import (
    ModifyPointsSerializer, RewardHistorySerializer, RewardSettingSerializer,
    RewardSettingUpdateSerializer, UserRewardSerializer,
)
from .services import RewardService

logger = logging.getLogger(__name__)

User = get_user_model()


class MyRewardsView(APIView):
    """
    GET /rewards/me - баланс текущего пользователя (со списанием сгоревших баллов)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        account = RewardService.get_user_points(request.user)
        settings_obj = RewardService.get_settings()
        history = account.history.select_related('booking').order_by('-created_at', '-id')[:50]

        return Response({
            'totalPoints': account.total_points,
            'lifetimePoints': {
                'earned': account.lifetime_earned,
                'used': account.lifetime_used,
            },
            'pointValue': str(RewardService.points_to_currency(1, settings_obj)),
            'minBookingForPoints': str(settings_obj.min_booking_amount_for_points),
            'pointsPerBooking': settings_obj.points_per_booking,
            'maxRedeemPercentage': settings_obj.max_points_redeem_percentage,
            'history': RewardHistorySerializer(history, many=True).data,
        })


class ModifyPointsView(APIView):
    """
    POST /rewards/modify - ручное начисление/списание (только для админов)
    """
    permission_classes = [IsAdminUser]

    def post(self, request):
        serializer = ModifyPointsSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data

        user = User.objects.filter(pk=data['userId']).first()
        if user is None:
            raise NotFoundError('User not found')

        account = RewardService.modify_user_points(
            user,
            data['points'],
            data['action'],
            note=data.get('note', ''),
            admin_user=request.user,
            ip_address=client_ip(request),
        )
        return Response({'message': 'Points updated', 'data': UserRewardSerializer(account).data})


class AllUsersRewardsView(APIView):
    """
    GET /rewards/users?userId=&page=&limit= - балансы всех пользователей (только для админов)
    """
    permission_classes = [IsAdminUser]

    def get(self, request):
        params = request.query_params
        user_id = params.get('userId')
        if user_id and not user_id.isdigit():
            raise ValidationError('Invalid userId')
        page = params.get('page', '1')
        limit = params.get('limit', '10')
        result = RewardService.get_all_users_rewards(
            user_id=user_id,
            page=int(page) if page.isdigit() else 1,
            limit=int(limit) if limit.isdigit() else 10,
        )
        return Response({
            'users': UserRewardSerializer(result['data'], many=True).data,
            'pagination': result['meta'],
        })


class RewardSettingsView(APIView):
    """
    GET /rewards/settings - текущие настройки
    PUT /rewards/settings - изменение с записью в журнал (только для админов)
    """

    def get_permissions(self):
        if self.request.method == 'GET':
            return [IsAuthenticated()]
        return [IsAdminUser()]

    def get(self, request):
        return Response(RewardSettingSerializer(RewardService.get_settings()).data)

    def put(self, request):
        serializer = RewardSettingUpdateSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        updates = dict(serializer.validated_data)
        reason = updates.pop('reason', '')
        settings_obj = RewardService.update_settings(
            updates, request.user, ip_address=client_ip(request), reason=reason
        )
        return Response(RewardSettingSerializer(settings_obj).data)
