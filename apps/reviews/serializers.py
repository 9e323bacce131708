from rest_framework import serializers

from .models import Review


class ReviewSerializer(serializers.ModelSerializer):
    reviewer_name = serializers.CharField(source="reviewer.display_name", read_only=True)
    reviewee_name = serializers.CharField(source="reviewee.display_name", read_only=True)
    project_title = serializers.CharField(source="project.title", read_only=True)

    class Meta:
        model = Review
        fields = [
            "id", "project", "project_title", "reviewer", "reviewer_name",
            "reviewee", "reviewee_name", "rating", "comment", "response",
            "response_at", "created_at", "updated_at",
        ]
        read_only_fields = fields


class ReviewCreateSerializer(serializers.Serializer):
    project_id = serializers.IntegerField()
    reviewee_id = serializers.IntegerField()
    rating = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(required=False, allow_blank=True, default="")


class ReviewUpdateSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5, required=False)
    comment = serializers.CharField(required=False, allow_blank=True)


class ReviewResponseSerializer(serializers.Serializer):
    comment = serializers.CharField()

    def validate_comment(self, value):
        if not value.strip():
            raise serializers.ValidationError("Response cannot be empty.")
        return value.strip()
