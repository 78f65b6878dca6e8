from django.urls import path

from .views import RegisterView, LoginView, MeView, LogoutView, UserListView

urlpatterns = [
    path('register/', RegisterView.as_view(), name='auth-register'),
    path('login/', LoginView.as_view(), name='auth-login'),
    path('me/', MeView.as_view(), name='auth-me'),
    path('logout/', LogoutView.as_view(), name='auth-logout'),
    path('users/', UserListView.as_view(), name='auth-users'),
]
