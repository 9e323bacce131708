import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from apps.cores.realtime import chat_group, push_to_group
from apps.notifications.services.create_notifications import safe_notify
from apps.projects.models import Project
from .models import Conversation, ConversationParticipant, Message, MessageAttachment, hash_metadata

logger = logging.getLogger(__name__)

User = get_user_model()

MESSAGE_DELETE_WINDOW = timezone.timedelta(hours=1)


def conversation_for(user, conversation_id):
    conversation = (
        Conversation.objects
        .select_related("project")
        .prefetch_related("participants")
        .filter(pk=conversation_id)
        .first()
    )
    if conversation is None:
        raise NotFound("Conversation not found.")
    if not conversation.has_participant(user):
        raise PermissionDenied("You are not a participant of this conversation.")
    return conversation


def get_or_create_conversation(user, participant_id, project_id=None):
    """
    Two-party conversation between ``user`` and ``participant_id``, optionally
    scoped to a project. Returns ``(conversation, created)``.
    """
    participant = User.objects.filter(pk=participant_id).first()
    if participant is None:
        raise NotFound("User not found.")
    if participant.pk == user.pk:
        raise ValidationError({"participant_id": "You cannot start a conversation with yourself."})

    project = None
    if project_id:
        project = Project.objects.filter(pk=project_id).first()
        if project is None:
            raise NotFound("Project not found.")

    existing = (
        Conversation.objects
        .filter(memberships__user=user)
        .filter(memberships__user=participant)
        .filter(project=project)
        .first()
    )
    if existing is not None:
        return existing, False

    with transaction.atomic():
        conversation = Conversation.objects.create(project=project)
        ConversationParticipant.objects.bulk_create([
            ConversationParticipant(conversation=conversation, user=user),
            ConversationParticipant(conversation=conversation, user=participant),
        ])
    logger.info("Conversation %s opened between %s and %s", conversation.pk, user.pk, participant.pk)
    return conversation, True


def _receiver_of(conversation, sender):
    other = conversation.memberships.exclude(user_id=sender.id).select_related("user").first()
    if other is None:
        raise ValidationError("Conversation has no other participant.")
    return other.user


def post_message(conversation, sender, content, metadata=None, files=()):
    content = (content or "").strip()
    if not content and not files:
        raise ValidationError({"content": "Message content is required."})

    receiver = _receiver_of(conversation, sender)

    with transaction.atomic():
        message = Message.objects.create(
            conversation=conversation,
            sender=sender,
            receiver=receiver,
            content=content,
            metadata=hash_metadata(metadata) if metadata else "",
        )
        for upload in files:
            MessageAttachment.objects.create(
                message=message,
                name=upload.name,
                file=upload,
                content_type=getattr(upload, "content_type", "") or "",
            )

        conversation.last_message = message
        conversation.save(update_fields=["last_message", "updated_at"])
        ConversationParticipant.objects.filter(
            conversation=conversation, user=receiver
        ).update(unread_count=F("unread_count") + 1)

    title = "New Message with Attachments" if files else "New Message"
    safe_notify(
        receiver, "message", title,
        f"{sender.display_name} sent you a message.",
        link=f"/messages/conversations/{conversation.pk}",
        related=message,
    )

    from .serializers import MessageSerializer
    push_to_group(chat_group(conversation.pk), "chat_message", {"message": MessageSerializer(message).data})
    return message


def mark_read(conversation, user):
    with transaction.atomic():
        updated = Message.objects.filter(
            conversation=conversation, receiver=user, read_status=False
        ).update(read_status=True, read_at=timezone.now())
        ConversationParticipant.objects.filter(
            conversation=conversation, user=user
        ).update(unread_count=0)
    return updated


def delete_message(user, message_id):
    message = Message.objects.select_related("conversation").filter(pk=message_id).first()
    if message is None:
        raise NotFound("Message not found.")
    if message.sender_id != user.id:
        raise PermissionDenied("You can only delete your own messages.")
    if message.created_at < timezone.now() - MESSAGE_DELETE_WINDOW:
        raise ValidationError("Messages can only be deleted within one hour of sending.")

    conversation = message.conversation
    with transaction.atomic():
        was_last = conversation.last_message_id == message.pk
        if not message.read_status:
            ConversationParticipant.objects.filter(
                conversation=conversation, user_id=message.receiver_id, unread_count__gt=0
            ).update(unread_count=F("unread_count") - 1)
        message.delete()
        if was_last:
            conversation.last_message = conversation.messages.order_by("-created_at", "-id").first()
            conversation.save(update_fields=["last_message", "updated_at"])


def unread_total(user):
    total = ConversationParticipant.objects.filter(user=user).aggregate(total=Sum("unread_count"))
    return total["total"] or 0
