from rest_framework import serializers

from .models import Contract, ContractVersion


class ContractVersionSerializer(serializers.ModelSerializer):
    class Meta:
        model = ContractVersion
        fields = ["id", "terms", "amount", "start_date", "end_date", "hash", "created_at"]
        read_only_fields = fields


class ContractSerializer(serializers.ModelSerializer):
    project_title = serializers.CharField(source="project.title", read_only=True)
    client_name = serializers.CharField(source="client.user.display_name", read_only=True)
    freelancer_name = serializers.CharField(source="freelancer.user.display_name", read_only=True)
    signatures = serializers.SerializerMethodField()
    versions = ContractVersionSerializer(many=True, read_only=True)

    class Meta:
        model = Contract
        fields = [
            "id", "project", "project_title", "client", "client_name", "freelancer",
            "freelancer_name", "terms", "amount", "start_date", "end_date", "signatures",
            "status", "hash", "versions", "completed_at", "terminated_at",
            "created_at", "updated_at",
        ]
        read_only_fields = fields

    def get_signatures(self, obj):
        return {
            "client": {"signed": obj.client_signed, "date": obj.client_signed_at},
            "freelancer": {"signed": obj.freelancer_signed, "date": obj.freelancer_signed_at},
        }


class ContractCreateSerializer(serializers.Serializer):
    project_id = serializers.IntegerField()
    terms = serializers.CharField()
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)

    def validate_terms(self, value):
        if len(value.strip()) < 20:
            raise serializers.ValidationError("Terms must be at least 20 characters long.")
        return value


class ContractTermsSerializer(serializers.Serializer):
    terms = serializers.CharField(required=False)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Nothing to update.")
        return attrs
