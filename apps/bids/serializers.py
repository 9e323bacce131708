from rest_framework import serializers

from apps.projects.serializers import FreelancerMiniSerializer
from .models import Bid


class ProjectMiniSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    title = serializers.CharField(read_only=True)
    budget = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    deadline = serializers.DateField(read_only=True)
    status = serializers.CharField(read_only=True)


class CounterOfferSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, source="counter_amount")
    delivery_time = serializers.IntegerField(source="counter_delivery_time")
    message = serializers.CharField(source="counter_message")
    status = serializers.CharField(source="counter_status")
    created_at = serializers.DateTimeField(source="counter_created_at")
    responded_at = serializers.DateTimeField(source="counter_responded_at")


class BidSerializer(serializers.ModelSerializer):
    freelancer = FreelancerMiniSerializer(read_only=True)
    counter_offer = serializers.SerializerMethodField()

    class Meta:
        model = Bid
        fields = [
            "id", "project", "freelancer", "amount", "delivery_time", "proposal",
            "status", "counter_offer", "created_at", "updated_at",
        ]
        read_only_fields = fields

    def get_counter_offer(self, obj):
        if obj.counter_status == "none":
            return None
        return CounterOfferSerializer(obj).data


class MyBidSerializer(BidSerializer):
    project = ProjectMiniSerializer(read_only=True)


class BidWriteSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    delivery_time = serializers.IntegerField()
    proposal = serializers.CharField()

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Bid amount must be greater than zero.")
        return value

    def validate_delivery_time(self, value):
        if value < 1:
            raise serializers.ValidationError("Delivery time must be at least one day.")
        return value

    def validate_proposal(self, value):
        if len(value.strip()) < 10:
            raise serializers.ValidationError("Proposal must be at least 10 characters long.")
        return value.strip()


class CounterOfferCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    delivery_time = serializers.IntegerField()
    message = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Counter amount must be greater than zero.")
        return value

    def validate_delivery_time(self, value):
        if value < 1:
            raise serializers.ValidationError("Delivery time must be at least one day.")
        return value


class CounterOfferResponseSerializer(serializers.Serializer):
    response = serializers.ChoiceField(choices=["accept", "reject"])
