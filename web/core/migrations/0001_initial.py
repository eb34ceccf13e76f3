from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Deck',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='decks', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['name'],
                'indexes': [models.Index(fields=['user', 'name'], name='deck_user_name_idx')],
                'constraints': [models.UniqueConstraint(fields=('user', 'name'), name='unique_deck_name_per_user')],
            },
        ),
        migrations.CreateModel(
            name='Card',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('front_md', models.TextField()),
                ('back_md', models.TextField()),
                ('tags', models.JSONField(blank=True, default=list)),
                ('review_count', models.PositiveIntegerField(default=0)),
                ('last_reviewed', models.DateTimeField(blank=True, null=True)),
                ('next_review', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('deck', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='cards', to='core.deck')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='cards', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-updated_at'],
                'indexes': [
                    models.Index(fields=['user', 'deck'], name='card_user_deck_idx'),
                    models.Index(fields=['user', 'next_review'], name='card_user_next_review_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StudySession',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('started_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('ended_at', models.DateTimeField(blank=True, null=True)),
                ('cards_reviewed', models.PositiveIntegerField(default=0)),
                ('score', models.FloatField(default=0)),
                ('deck', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='study_sessions', to='core.deck')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='study_sessions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-started_at'],
                'indexes': [models.Index(fields=['user', 'started_at'], name='session_user_started_idx')],
            },
        ),
        migrations.CreateModel(
            name='StudyEvent',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('deck_id', models.BigIntegerField(blank=True, null=True)),
                ('card_id', models.UUIDField(blank=True, null=True)),
                ('session_id', models.UUIDField(blank=True, null=True)),
                ('action_type', models.CharField(choices=[('session_start', 'Session start'), ('session_end', 'Session end'), ('card_review', 'Card review'), ('deck_created', 'Deck created'), ('card_created', 'Card created'), ('achievement_unlocked', 'Achievement unlocked')], max_length=32)),
                ('difficulty', models.CharField(blank=True, choices=[('again', 'Again'), ('easy', 'Easy'), ('good', 'Good'), ('hard', 'Hard')], max_length=10, null=True)),
                ('is_correct', models.BooleanField(blank=True, null=True)),
                ('study_time', models.PositiveIntegerField(blank=True, null=True)),
                ('xp', models.IntegerField(blank=True, null=True)),
                ('streak', models.PositiveIntegerField(blank=True, null=True)),
                ('level', models.PositiveIntegerField(blank=True, null=True)),
                ('achievement_name', models.CharField(blank=True, max_length=255)),
                ('created_at', models.DateTimeField()),
                ('calendar_date', models.DateField()),
                ('iso_year', models.PositiveSmallIntegerField()),
                ('iso_week', models.PositiveSmallIntegerField()),
                ('month', models.PositiveSmallIntegerField()),
                ('year', models.PositiveSmallIntegerField()),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='study_events', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user', 'created_at'], name='event_user_created_idx'),
                    models.Index(fields=['user', 'action_type'], name='event_user_action_idx'),
                    models.Index(fields=['user', 'deck_id'], name='event_user_deck_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Achievement',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True)),
                ('icon', models.CharField(blank=True, max_length=16)),
                ('category', models.CharField(choices=[('creation', 'Creation'), ('study', 'Study'), ('streak', 'Streak'), ('accuracy', 'Accuracy')], max_length=32)),
                ('condition_type', models.CharField(choices=[('total_decks', 'Total decks'), ('total_cards', 'Total cards'), ('total_sessions', 'Total sessions'), ('total_study_time', 'Total study time'), ('study_streak', 'Study streak'), ('session_accuracy', 'Session accuracy'), ('cards_per_session', 'Cards per session')], max_length=32)),
                ('condition_operator', models.CharField(choices=[('>=', 'At least'), ('<=', 'At most'), ('==', 'Exactly'), ('>', 'More than'), ('<', 'Less than')], max_length=2)),
                ('condition_value', models.IntegerField()),
                ('unlocked', models.BooleanField(default=False)),
                ('unlocked_at', models.DateTimeField(blank=True, null=True)),
                ('progress', models.IntegerField(default=0)),
                ('target', models.IntegerField()),
                ('xp_reward', models.IntegerField(default=0)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='achievements', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['id'],
                'indexes': [
                    models.Index(fields=['user', 'unlocked'], name='achievement_user_unlocked_idx'),
                    models.Index(fields=['user', 'category'], name='achievement_user_category_idx'),
                ],
                'constraints': [models.UniqueConstraint(fields=('user', 'name'), name='unique_achievement_per_user')],
            },
        ),
    ]
