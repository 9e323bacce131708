from django.contrib import admin

from .models import (
    Category, Skill, FreelancerProfile, FreelancerSkill, Education,
    EmploymentHistory, VerificationDocument,
)


@admin.register(FreelancerProfile)
class FreelancerProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "title", "verification_status", "average_rating", "completed_projects")
    list_filter = ("verification_status", "verification_level")


admin.site.register(Category)
admin.site.register(Skill)
admin.site.register(FreelancerSkill)
admin.site.register(Education)
admin.site.register(EmploymentHistory)
admin.site.register(VerificationDocument)
