from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin
from django.utils.translation import gettext_lazy as _
from cash_ledger.models import Customer, User


# Extend stock `DjangoUserAdmin`
@admin.register(User)  # Hook custom `User` model into Django Admin
class UserAdmin(DjangoUserAdmin):
    model = User

    # fields shown in list
    list_display = ("username", "email", "get_full_name", "role", "is_staff")
    list_filter = ("role", "is_staff", "is_superuser", "is_active")
    search_fields = ("username", "email", "first_name", "last_name")
    ordering = ("username",)

    # Stock Django grouping plus the shop role and contact fields
    fieldsets = DjangoUserAdmin.fieldsets + (
        (_("Shop"), {"fields": ("role", "phone", "address")}),
    )
    add_fieldsets = DjangoUserAdmin.add_fieldsets + (
        (_("Shop"), {"fields": ("role",)}),
    )


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "phone", "created_at")
    search_fields = ("name", "phone")
    ordering = ("name",)
