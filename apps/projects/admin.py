from django.contrib import admin

from .models import Attachment, Milestone, Project, Submission


class MilestoneInline(admin.TabularInline):
    model = Milestone
    extra = 0


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ("title", "client", "status", "budget", "assigned_freelancer", "created_at")
    list_filter = ("status", "category")
    search_fields = ("title", "description")
    inlines = [MilestoneInline]


admin.site.register(Submission)
admin.site.register(Attachment)
