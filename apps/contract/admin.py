from django.contrib import admin

from .models import Contract, ContractVersion


class ContractVersionInline(admin.TabularInline):
    model = ContractVersion
    extra = 0
    readonly_fields = ("terms", "amount", "start_date", "end_date", "hash", "created_at")


@admin.register(Contract)
class ContractAdmin(admin.ModelAdmin):
    list_display = ("id", "project", "status", "amount", "client_signed", "freelancer_signed")
    list_filter = ("status",)
    inlines = [ContractVersionInline]
