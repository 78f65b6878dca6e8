from rest_framework.routers import SimpleRouter

from .views import CouponViewSet

router = SimpleRouter()
router.register(r'coupons', CouponViewSet, basename='coupon')

urlpatterns = router.urls
