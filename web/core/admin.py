from django.contrib import admin

from .models import Achievement, Card, Deck, StudyEvent, StudySession


@admin.register(Deck)
class DeckAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'name', 'created_at')
    search_fields = ('name',)
    list_filter = ('user',)


@admin.register(Card)
class CardAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'deck', 'review_count', 'last_reviewed', 'next_review', 'updated_at')
    search_fields = ('front_md', 'back_md')
    list_filter = ('user', 'deck')


@admin.register(StudySession)
class StudySessionAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'deck', 'started_at', 'ended_at', 'cards_reviewed', 'score')
    list_filter = ('user',)


@admin.register(StudyEvent)
class StudyEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'action_type', 'deck_id', 'difficulty', 'is_correct', 'study_time', 'xp', 'created_at')
    list_filter = ('action_type', 'difficulty', 'user')
    date_hierarchy = 'created_at'

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Achievement)
class AchievementAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'name', 'category', 'progress', 'target', 'unlocked', 'unlocked_at')
    list_filter = ('category', 'unlocked', 'user')
    search_fields = ('name',)
