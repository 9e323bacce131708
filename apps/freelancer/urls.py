from django.urls import path, include
from rest_framework.routers import DefaultRouter

from . import views

router = DefaultRouter()
router.register(r'skills', views.SkillViewSet, basename='freelancer-skills')
router.register(r'portfolio', views.PortfolioViewSet, basename='freelancer-portfolio')
router.register(r'experience', views.ExperienceViewSet, basename='freelancer-experience')
router.register(r'education', views.EducationViewSet, basename='freelancer-education')
router.register(r'languages', views.LanguageViewSet, basename='freelancer-languages')
router.register(r'certifications', views.CertificationViewSet, basename='freelancer-certifications')
router.register(r'documents', views.DocumentViewSet, basename='freelancer-documents')

urlpatterns = [
    path('profile/', views.FreelancerProfileView.as_view(), name='freelancer-profile'),
    path('profile/image/', views.upload_profile_image, name='freelancer-profile-image'),
    path('profile/completeness/', views.profile_completeness, name='freelancer-profile-completeness'),
    path('categories/', views.CategoryListView.as_view(), name='categories'),
    path('skill-catalog/', views.SkillListView.as_view(), name='skill-catalog'),

    path('', include(router.urls)),
]
