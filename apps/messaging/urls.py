from django.urls import path

from . import views

urlpatterns = [
    path("conversations/", views.ConversationListCreateView.as_view(), name="conversations"),
    path("conversations/<int:pk>/", views.ConversationDetailView.as_view(), name="conversation-detail"),
    path("conversations/<int:pk>/messages/", views.MessageListCreateView.as_view(), name="conversation-messages"),
    path(
        "conversations/<int:pk>/messages/attachments/",
        views.MessageAttachmentCreateView.as_view(),
        name="conversation-message-attachments",
    ),
    path("conversations/<int:pk>/read/", views.ConversationReadView.as_view(), name="conversation-read"),
    path("messages/<int:pk>/", views.MessageDeleteView.as_view(), name="message-delete"),
    path("unread-count/", views.UnreadCountView.as_view(), name="message-unread-count"),
]
