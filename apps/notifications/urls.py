from django.urls import path, include
from rest_framework.routers import SimpleRouter

from . import views

router = SimpleRouter()
router.register(r'templates', views.NotificationTemplateViewSet, basename='notification-templates')

urlpatterns = [
    path('', views.NotificationListView.as_view(), name='notifications'),
    path('read-all/', views.MarkAllAsReadView.as_view(), name='notifications-read-all'),
    path('unread-count/', views.UnreadCountView.as_view(), name='notifications-unread-count'),
    path('preferences/', views.PreferencesView.as_view(), name='notification-preferences'),
    path('email/', views.SendEmailView.as_view(), name='notify-email'),
    path('sms/', views.SendSmsView.as_view(), name='notify-sms'),

    path('scheduled/', views.ScheduledNotificationListCreateView.as_view(), name='scheduled-notifications'),
    path('scheduled/<int:pk>/', views.ScheduledNotificationDetailView.as_view(), name='scheduled-notification-detail'),
    path('scheduled/<int:pk>/cancel/', views.CancelScheduledNotificationView.as_view(), name='scheduled-notification-cancel'),

    path('<int:pk>/read/', views.MarkAsReadView.as_view(), name='notification-read'),
    path('<int:pk>/', views.NotificationDeleteView.as_view(), name='notification-delete'),

    path('', include(router.urls)),
]
