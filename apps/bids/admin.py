from django.contrib import admin

from .models import Bid


@admin.register(Bid)
class BidAdmin(admin.ModelAdmin):
    list_display = ("project", "freelancer", "amount", "delivery_time", "status", "counter_status", "created_at")
    list_filter = ("status", "counter_status")
