from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response

from rooms.permissions import IsAdminUser, IsAuthenticated
from .models import Coupon
from .serializers import ApplyCouponSerializer, CouponSerializer
from .services import apply_coupon


class CouponViewSet(viewsets.ModelViewSet):
    """
    CRUD купонов (администратор) и расчет скидки (любой авторизованный)
    """
    queryset = Coupon.objects.prefetch_related('applicable_space_types', 'applicable_rooms', 'applicable_users')
    serializer_class = CouponSerializer
    lookup_value_regex = r'\d+'

    def get_permissions(self):
        if self.action == 'apply':
            permission_classes = [IsAuthenticated]
        else:
            permission_classes = [IsAdminUser]
        return [permission() for permission in permission_classes]

    @action(detail=False, methods=['post'], url_path='apply')
    def apply(self, request):
        """
        POST /coupons/apply - скидка по купону для текущего пользователя
        """
        serializer = ApplyCouponSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data

        result = apply_coupon(
            data['couponCode'],
            data['totalAmount'],
            user_id=request.user.pk,
            room_id=data.get('roomId'),
            space_type_id=data.get('spaceTypeId'),
        )
        return Response({
            'discount': str(result['discount']),
            'discountedAmount': str(result['discountedAmount']),
            'couponCode': result['couponCode'],
        })
