from rest_framework import serializers

from apps.cores.uploads import validate_uploads
from .models import Conversation, Message, MessageAttachment


class ParticipantSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    name = serializers.CharField(source="display_name", read_only=True)
    email = serializers.EmailField(read_only=True)
    role = serializers.CharField(read_only=True)


class MessageAttachmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = MessageAttachment
        fields = ["id", "name", "file", "content_type"]
        read_only_fields = fields


class MessageSerializer(serializers.ModelSerializer):
    sender = ParticipantSerializer(read_only=True)
    attachments = MessageAttachmentSerializer(many=True, read_only=True)

    class Meta:
        model = Message
        fields = [
            "id", "conversation", "sender", "receiver", "content", "metadata",
            "attachments", "read_status", "read_at", "created_at",
        ]
        read_only_fields = fields


class LastMessageSerializer(serializers.ModelSerializer):
    class Meta:
        model = Message
        fields = ["id", "content", "sender", "read_status", "created_at"]
        read_only_fields = fields


class ConversationSerializer(serializers.ModelSerializer):
    participants = ParticipantSerializer(many=True, read_only=True)
    other_participants = serializers.SerializerMethodField()
    last_message = LastMessageSerializer(read_only=True)
    project = serializers.SerializerMethodField()
    unread_count = serializers.SerializerMethodField()

    class Meta:
        model = Conversation
        fields = [
            "id", "participants", "other_participants", "project",
            "last_message", "unread_count", "updated_at",
        ]
        read_only_fields = fields

    def _viewer_id(self):
        request = self.context.get("request")
        return request.user.id if request else None

    def get_other_participants(self, obj):
        viewer = self._viewer_id()
        others = [p for p in obj.participants.all() if p.id != viewer]
        return ParticipantSerializer(others, many=True).data

    def get_project(self, obj):
        if obj.project_id is None:
            return None
        return {"id": obj.project_id, "title": obj.project.title}

    def get_unread_count(self, obj):
        viewer = self._viewer_id()
        for membership in obj.memberships.all():
            if membership.user_id == viewer:
                return membership.unread_count
        return 0


class ConversationCreateSerializer(serializers.Serializer):
    participant_id = serializers.IntegerField()
    project_id = serializers.IntegerField(required=False, allow_null=True)


class MessageCreateSerializer(serializers.Serializer):
    content = serializers.CharField(required=False, allow_blank=True, default="")
    metadata = serializers.CharField(required=False, allow_blank=True, default="")
    files = serializers.ListField(
        child=serializers.FileField(), required=False, default=list, max_length=5
    )

    def validate_files(self, value):
        validate_uploads(value, "messages")
        return value
