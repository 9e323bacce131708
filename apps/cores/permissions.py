from rest_framework.permissions import BasePermission


class IsClient(BasePermission):
    message = "Only clients can perform this action."

    def has_permission(self, request, view):
        return (
            request.user.is_authenticated
            and request.user.role == "client"
        )


class IsFreelancer(BasePermission):
    message = "Only freelancers can perform this action."

    def has_permission(self, request, view):
        return (
            request.user.is_authenticated
            and request.user.role == "freelancer"
        )


class IsAdmin(BasePermission):
    message = "Admin access required."

    def has_permission(self, request, view):
        return (
            request.user.is_authenticated
            and request.user.role == "admin"
        )


class IsVerified(BasePermission):
    """
    Blocks accounts that have not confirmed their email address.
    """
    message = "Please verify your email address first."

    def has_permission(self, request, view):
        return (
            request.user.is_authenticated
            and request.user.is_verified
        )
