from django.contrib import admin
from .models import Site


@admin.register(Site)
class SiteAdmin(admin.ModelAdmin):
    list_display = ('title', 'owner', 'is_published', 'published_at', 'created_at')
    list_filter = ('is_published', 'created_at')
    search_fields = ('title', 'prompt', 'owner__email')
    readonly_fields = ('id', 'owner', 'prompt', 'created_at', 'updated_at', 'published_at')
