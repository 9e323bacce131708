from rest_framework.permissions import BasePermission


class IsContractParty(BasePermission):
    message = "You are not a party to this contract."

    def has_object_permission(self, request, view, obj):
        return request.user.role == "admin" or obj.is_party(request.user)
