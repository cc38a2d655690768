from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import FileViewSet, TagViewSet, connect_wallet, current_user, delete_comment

router = DefaultRouter()
router.register(r'files', FileViewSet, basename='file')
router.register(r'tags', TagViewSet, basename='tag')

urlpatterns = [
    path('', include(router.urls)),
    # Wallet session endpoints
    path('wallet/connect/', connect_wallet, name='wallet-connect'),
    path('users/me/', current_user, name='current-user'),
    path('comments/<str:comment_id>/', delete_comment, name='comment-delete'),
]
