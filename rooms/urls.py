from rest_framework.routers import DefaultRouter

from .views import RoomViewSet, SpaceTypeViewSet

router = DefaultRouter()
router.register(r'space-types', SpaceTypeViewSet, basename='space-type')
router.register(r'rooms', RoomViewSet, basename='room')

urlpatterns = router.urls
