from rest_framework import generics, status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from . import services
from .models import Conversation
from .serializers import (
    ConversationCreateSerializer,
    ConversationSerializer,
    MessageCreateSerializer,
    MessageSerializer,
)


# ---------- Conversations ----------
class ConversationListCreateView(generics.ListCreateAPIView):
    serializer_class = ConversationSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return (
            Conversation.objects
            .filter(memberships__user=self.request.user)
            .select_related("project", "last_message")
            .prefetch_related("participants", "memberships")
            .distinct()
        )

    def create(self, request, *args, **kwargs):
        serializer = ConversationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        conversation, created = services.get_or_create_conversation(
            request.user,
            serializer.validated_data["participant_id"],
            serializer.validated_data.get("project_id"),
        )
        return Response(
            {
                "message": "Conversation created/retrieved successfully",
                "conversation": ConversationSerializer(conversation, context={"request": request}).data,
            },
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class ConversationDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        conversation = services.conversation_for(request.user, pk)
        return Response(ConversationSerializer(conversation, context={"request": request}).data)


class ConversationReadView(APIView):
    permission_classes = [IsAuthenticated]

    def put(self, request, pk):
        conversation = services.conversation_for(request.user, pk)
        updated = services.mark_read(conversation, request.user)
        return Response({"message": "Messages marked as read", "updated": updated})


# ---------- Messages ----------
class MessageListCreateView(generics.ListCreateAPIView):
    """
    GET pages through the conversation oldest first and marks everything
    addressed to the caller as read.
    """
    serializer_class = MessageSerializer
    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def get_conversation(self):
        if not hasattr(self, "_conversation"):
            self._conversation = services.conversation_for(self.request.user, self.kwargs["pk"])
        return self._conversation

    def get_queryset(self):
        return (
            self.get_conversation().messages
            .select_related("sender")
            .prefetch_related("attachments")
        )

    def list(self, request, *args, **kwargs):
        response = super().list(request, *args, **kwargs)
        services.mark_read(self.get_conversation(), request.user)
        return response

    def create(self, request, *args, **kwargs):
        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        message = services.post_message(
            self.get_conversation(),
            request.user,
            serializer.validated_data["content"],
            serializer.validated_data["metadata"],
        )
        return Response(
            {"message": "Message sent successfully", "data": MessageSerializer(message).data},
            status=status.HTTP_201_CREATED,
        )


class MessageAttachmentCreateView(APIView):
    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request, pk):
        conversation = services.conversation_for(request.user, pk)
        serializer = MessageCreateSerializer(data={
            "content": request.data.get("content", ""),
            "metadata": request.data.get("metadata", ""),
            "files": request.FILES.getlist("files"),
        })
        serializer.is_valid(raise_exception=True)
        message = services.post_message(
            conversation,
            request.user,
            serializer.validated_data["content"],
            serializer.validated_data["metadata"],
            serializer.validated_data["files"],
        )
        return Response(
            {"message": "Message with attachments sent successfully", "data": MessageSerializer(message).data},
            status=status.HTTP_201_CREATED,
        )


class MessageDeleteView(APIView):
    permission_classes = [IsAuthenticated]

    def delete(self, request, pk):
        services.delete_message(request.user, pk)
        return Response({"message": "Message deleted successfully"})


class UnreadCountView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response({"unread_count": services.unread_total(request.user)})
