from rest_framework.exceptions import NotFound, PermissionDenied

from apps.freelancer.models import FreelancerProfile
from .models import ClientProfile


class ProfileSelector:
    """
    Re-derives the role specific profile of the authenticated user.
    """

    @staticmethod
    def client_for(user):
        if user.role != "client":
            raise PermissionDenied("Only clients can perform this action.")
        try:
            return ClientProfile.objects.get(user=user)
        except ClientProfile.DoesNotExist:
            raise NotFound("Client profile not found.")

    @staticmethod
    def freelancer_for(user):
        if user.role != "freelancer":
            raise PermissionDenied("Only freelancers can perform this action.")
        try:
            return FreelancerProfile.objects.get(user=user)
        except FreelancerProfile.DoesNotExist:
            raise NotFound("Freelancer profile not found.")

    @staticmethod
    def client_or_none(user):
        return ClientProfile.objects.filter(user=user).first()

    @staticmethod
    def freelancer_or_none(user):
        return FreelancerProfile.objects.filter(user=user).first()
