from django.urls import path

from .views import AdminUserListView, AdminUserRoleView

app_name = 'admin-api'

urlpatterns = [
    path('users/', AdminUserListView.as_view(), name='user-list'),
    path('users/<int:user_id>/role/', AdminUserRoleView.as_view(), name='user-role'),
]
