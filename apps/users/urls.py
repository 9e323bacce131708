from django.urls import path

from .views import FreelancerSearchView, UserDetailView, user_exists

urlpatterns = [
    path('freelancers/search/', FreelancerSearchView.as_view(), name='freelancer-search'),
    path('exists/<int:user_id>/', user_exists, name='user-exists'),
    path('<int:user_id>/', UserDetailView.as_view(), name='user-detail'),
]
