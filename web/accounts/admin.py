from django.contrib import admin

from .models import User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('id', 'email', 'display_name', 'is_staff', 'created_at')
    search_fields = ('email', 'display_name')
    list_filter = ('is_staff', 'is_active')
