import logging

from django.db import transaction
from django.utils import timezone
from rest_framework import generics, status, viewsets
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.generics import get_object_or_404
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.cores.permissions import IsAdmin
from .models import NOTIFICATION_TYPES, Notification, NotificationTemplate, ScheduledNotification
from .serializers import (
    NotificationSerializer,
    PreferencesSerializer,
    DirectEmailSerializer,
    DirectSmsSerializer,
    NotificationTemplateSerializer,
    ScheduledNotificationSerializer,
)
from .services.create_notifications import notify_user
from .services.dispatch import send_email, send_notification_by_template, send_sms
from .services.scheduler import ScheduleError, cancel_scheduled_notification, schedule_notification

logger = logging.getLogger(__name__)

VALID_TYPES = {value for value, _ in NOTIFICATION_TYPES}


def _owned_notification(request, pk):
    notification = get_object_or_404(Notification, pk=pk)
    if notification.recipient_id != request.user.id:
        raise PermissionDenied("Not authorized to access this notification.")
    return notification


# ---------- In-app notifications ----------
class NotificationListView(generics.ListAPIView):
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        qs = Notification.objects.filter(recipient=self.request.user)

        notif_type = self.request.query_params.get("type")
        if notif_type:
            qs = qs.filter(notif_type=notif_type)

        read = self.request.query_params.get("read")
        if read in ("true", "false"):
            qs = qs.filter(is_read=read == "true")

        return qs


class MarkAsReadView(APIView):
    permission_classes = [IsAuthenticated]

    def put(self, request, pk):
        notification = _owned_notification(request, pk)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = timezone.now()
            notification.save(update_fields=["is_read", "read_at"])
        return Response(NotificationSerializer(notification).data)

    patch = put


class MarkAllAsReadView(APIView):
    permission_classes = [IsAuthenticated]

    def put(self, request):
        qs = Notification.objects.filter(recipient=request.user, is_read=False)

        notif_type = request.data.get("type") or request.query_params.get("type")
        if notif_type:
            if notif_type not in VALID_TYPES:
                raise ValidationError({"type": f"Unknown notification type '{notif_type}'."})
            qs = qs.filter(notif_type=notif_type)

        updated = qs.update(is_read=True, read_at=timezone.now())
        return Response({"message": "Notifications marked as read.", "updated": updated})


class NotificationDeleteView(APIView):
    permission_classes = [IsAuthenticated]

    def delete(self, request, pk):
        _owned_notification(request, pk).delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class UnreadCountView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        count = Notification.objects.filter(recipient=request.user, is_read=False).count()
        return Response({"count": count})


class PreferencesView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(request.user.notification_preferences)

    def put(self, request):
        serializer = PreferencesSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return Response({
            "message": "Notification preferences updated.",
            "preferences": user.notification_preferences,
        })


# ---------- Direct sends ----------
class SendEmailView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    def post(self, request):
        serializer = DirectEmailSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        recipient = data["recipient"]

        if data.get("template_name"):
            result = send_notification_by_template(
                data["template_name"], recipient, data["template_data"], ["email", "in_app"]
            )
            return Response({"message": "Email notification sent using template.", "result": result})

        html = (
            f"<h1>{data['subject']}</h1>"
            f"<p>{data['message']}</p>"
            "<p>This email was sent from the SkillSwap platform.</p>"
        )
        send_email(recipient.email, data["subject"], html)
        notification = notify_user(recipient, "system", data["subject"], data["message"])

        return Response({
            "message": "Email notification sent.",
            "notification": NotificationSerializer(notification).data if notification else None,
        })


class SendSmsView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    def post(self, request):
        serializer = DirectSmsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        recipient = data["recipient"]

        if data.get("template_name"):
            result = send_notification_by_template(
                data["template_name"], recipient, data["template_data"], ["sms", "in_app"]
            )
            return Response({"message": "SMS notification sent using template.", "result": result})

        if not recipient.phone:
            raise ValidationError("Recipient does not have a phone number.")

        result = send_sms(recipient.phone, data["message"])
        notification = notify_user(recipient, "system", "SMS Notification", data["message"])

        return Response({
            "message": "SMS notification sent.",
            "sms": result,
            "notification": NotificationSerializer(notification).data if notification else None,
        })


# ---------- Templates (admin) ----------
class NotificationTemplateViewSet(viewsets.ModelViewSet):
    queryset = NotificationTemplate.objects.all()
    serializer_class = NotificationTemplateSerializer
    permission_classes = [IsAuthenticated, IsAdmin]
    http_method_names = ["get", "post", "put", "patch", "delete"]

    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user, updated_by=self.request.user)

    def perform_update(self, serializer):
        serializer.save(updated_by=self.request.user)

    def perform_destroy(self, instance):
        if instance.schedules.filter(status="scheduled").exists():
            raise ValidationError("Template is used by pending scheduled notifications.")
        instance.delete()


# ---------- Scheduled notifications (admin) ----------
class ScheduledNotificationListCreateView(generics.ListCreateAPIView):
    serializer_class = ScheduledNotificationSerializer
    permission_classes = [IsAuthenticated, IsAdmin]

    def get_queryset(self):
        qs = ScheduledNotification.objects.select_related("template").prefetch_related("recipients")
        status_filter = self.request.query_params.get("status")
        if status_filter:
            qs = qs.filter(status=status_filter)
        return qs

    def perform_create(self, serializer):
        schedule = serializer.save(created_by=self.request.user)
        transaction.on_commit(lambda: schedule_notification(schedule))
        logger.info("Scheduled notification %s created by %s", schedule.pk, self.request.user.pk)


class ScheduledNotificationDetailView(generics.RetrieveAPIView):
    queryset = ScheduledNotification.objects.select_related("template")
    serializer_class = ScheduledNotificationSerializer
    permission_classes = [IsAuthenticated, IsAdmin]


class CancelScheduledNotificationView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    def put(self, request, pk):
        schedule = get_object_or_404(ScheduledNotification, pk=pk)
        try:
            cancel_scheduled_notification(schedule)
        except ScheduleError as exc:
            raise ValidationError(str(exc))
        return Response({
            "message": "Scheduled notification cancelled.",
            "scheduled_notification": ScheduledNotificationSerializer(schedule).data,
        })
