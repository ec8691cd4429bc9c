from django.contrib import admin
from django.core.exceptions import PermissionDenied

"""Base admin for append-only ledger history with list/search/filter defaults."""
class ReadOnlyAdmin(admin.ModelAdmin):
    list_per_page = 50  # page size (adjust for performance)

    # make every model field readonly
    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    # The change page stays viewable; every field is readonly anyway
    def has_change_permission(self, request, obj=None):
        return True

    # History rows only come from the ledger services
    def save_model(self, request, obj, form, change):
        raise PermissionDenied("Ledger history cannot be changed via the admin.")

    # Disable admin actions like delete_selected
    def get_actions(self, request):
        return {}

    # Otherwise filter by account and date when the model has them
    def get_list_filter(self, request):
        if self.list_filter:
            return self.list_filter
        possible = {f.name for f in self.model._meta.fields}
        filters = []
        for candidate in ("account", "from_account", "to_account", "action"):
            if candidate in possible:
                filters.append(candidate)
        date_field = getattr(self.model, "posting_date_field", None)
        if date_field:
            filters.append(date_field)
        return tuple(filters)

    def get_search_fields(self, request):
        if self.search_fields:
            return self.search_fields
        possible = {f.name for f in self.model._meta.fields}
        search = []
        for candidate in ("description", "actor_name", "transferred_by_name", "recorded_by_name"):
            if candidate in possible:
                search.append(candidate)
        return tuple(search)
