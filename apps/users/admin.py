from django.contrib import admin

from .models import ClientProfile, LoginHistory, User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ("email", "name", "role", "account_status", "is_verified", "created_at")
    list_filter = ("role", "account_status", "is_verified")
    search_fields = ("email", "name")


admin.site.register(ClientProfile)
admin.site.register(LoginHistory)
