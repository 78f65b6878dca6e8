from django.urls import path

from .views import AllUsersRewardsView, ModifyPointsView, MyRewardsView, RewardSettingsView

urlpatterns = [
    path('me/', MyRewardsView.as_view(), name='rewards-me'),
    path('modify/', ModifyPointsView.as_view(), name='rewards-modify'),
    path('users/', AllUsersRewardsView.as_view(), name='rewards-users'),
    path('settings/', RewardSettingsView.as_view(), name='rewards-settings'),
]
