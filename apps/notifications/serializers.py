from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework import serializers

from apps.users.models import NOTIFICATION_CATEGORIES
from .models import Notification, NotificationTemplate, ScheduledNotification
from .services.scheduler import is_valid_cron

User = get_user_model()


class NotificationSerializer(serializers.ModelSerializer):
    link = serializers.CharField(source="resolved_link", read_only=True)

    class Meta:
        model = Notification
        fields = [
            "id", "notif_type", "title", "message", "link",
            "related_id", "related_model", "data", "is_read", "read_at", "created_at",
        ]
        read_only_fields = fields


class ChannelPreferenceSerializer(serializers.Serializer):
    enabled = serializers.BooleanField(required=False)
    types = serializers.DictField(child=serializers.BooleanField(), required=False)
    frequency = serializers.ChoiceField(
        choices=["immediate", "daily", "weekly"], required=False
    )

    def validate_types(self, value):
        unknown = set(value) - set(NOTIFICATION_CATEGORIES)
        if unknown:
            raise serializers.ValidationError(f"Unknown notification types: {', '.join(sorted(unknown))}")
        return value


class PreferencesSerializer(serializers.Serializer):
    email = ChannelPreferenceSerializer(required=False)
    sms = ChannelPreferenceSerializer(required=False)
    in_app = ChannelPreferenceSerializer(required=False)

    def update(self, instance, validated_data):
        prefs = instance.notification_preferences
        for channel, changes in validated_data.items():
            current = prefs.setdefault(channel, {})
            if "enabled" in changes:
                current["enabled"] = changes["enabled"]
            if "frequency" in changes and channel != "in_app":
                current["frequency"] = changes["frequency"]
            if "types" in changes:
                current.setdefault("types", {}).update(changes["types"])
        instance.notification_preferences = prefs
        instance.save(update_fields=["notification_preferences"])
        return instance


class DirectEmailSerializer(serializers.Serializer):
    recipient_id = serializers.PrimaryKeyRelatedField(queryset=User.objects.all(), source="recipient")
    template_name = serializers.CharField(required=False)
    template_data = serializers.DictField(required=False, default=dict)
    subject = serializers.CharField(required=False, max_length=255)
    message = serializers.CharField(required=False)

    def validate(self, data):
        if not data.get("template_name") and not (data.get("subject") and data.get("message")):
            raise serializers.ValidationError("Provide a template_name or both subject and message.")
        return data


class DirectSmsSerializer(serializers.Serializer):
    recipient_id = serializers.PrimaryKeyRelatedField(queryset=User.objects.all(), source="recipient")
    template_name = serializers.CharField(required=False)
    template_data = serializers.DictField(required=False, default=dict)
    message = serializers.CharField(required=False, max_length=480)

    def validate(self, data):
        if not data.get("template_name") and not data.get("message"):
            raise serializers.ValidationError("Provide a template_name or a message.")
        return data


class NotificationTemplateSerializer(serializers.ModelSerializer):
    class Meta:
        model = NotificationTemplate
        fields = [
            "id", "name", "description", "channel", "subject", "content",
            "variables", "category", "is_active", "created_at", "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate(self, data):
        channel = data.get("channel", getattr(self.instance, "channel", None))
        subject = data.get("subject", getattr(self.instance, "subject", ""))
        if channel == "email" and not subject:
            raise serializers.ValidationError({"subject": "Email templates require a subject."})
        return data


class ScheduledNotificationSerializer(serializers.ModelSerializer):
    template = serializers.SlugRelatedField(
        slug_field="name", queryset=NotificationTemplate.objects.filter(is_active=True)
    )
    recipients = serializers.PrimaryKeyRelatedField(
        many=True, queryset=User.objects.all(), required=False
    )

    class Meta:
        model = ScheduledNotification
        fields = [
            "id", "template", "recipients", "recipient_filter", "data",
            "scheduled_for", "recurrence", "cron_expression", "end_date",
            "send_email", "send_sms", "send_in_app",
            "status", "result", "last_run_at", "created_at",
        ]
        read_only_fields = ["id", "status", "result", "last_run_at", "created_at"]

    def validate_recipient_filter(self, value):
        unknown = set(value) - {"roles", "last_active"}
        if unknown:
            raise serializers.ValidationError(f"Unsupported filter keys: {', '.join(sorted(unknown))}")
        return value

    def validate(self, data):
        recurrence = data.get("recurrence", "once")
        if recurrence == "custom" and not is_valid_cron(data.get("cron_expression", "")):
            raise serializers.ValidationError({"cron_expression": "A valid cron expression is required."})

        end_date = data.get("end_date")
        if end_date and end_date <= data["scheduled_for"]:
            raise serializers.ValidationError({"end_date": "End date must be after the first run."})

        if recurrence == "once" and data["scheduled_for"] < timezone.now() - timezone.timedelta(days=1):
            raise serializers.ValidationError({"scheduled_for": "Scheduled time is too far in the past."})

        if not (data.get("send_email") or data.get("send_sms") or data.get("send_in_app", True)):
            raise serializers.ValidationError("Select at least one channel.")
        return data
