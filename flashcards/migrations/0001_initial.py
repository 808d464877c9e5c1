import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="GenerationSession",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("user_id", models.CharField(db_index=True, max_length=64)),
                ("input_text", models.TextField()),
                ("model", models.CharField(blank=True, max_length=128, null=True)),
                ("generation_duration", models.PositiveIntegerField(default=0)),
                ("accepted_unedited_count", models.PositiveIntegerField(blank=True, null=True)),
                ("accepted_edited_count", models.PositiveIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "indexes": [models.Index(fields=["user_id", "created_at"], name="idx_session_user_created")],
            },
        ),
        migrations.CreateModel(
            name="Flashcard",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("user_id", models.CharField(db_index=True, max_length=64)),
                ("source", models.CharField(choices=[("manual", "Manual"), ("ai", "AI")], max_length=8)),
                ("front", models.CharField(max_length=200)),
                ("back", models.CharField(max_length=500)),
                ("model", models.CharField(blank=True, max_length=128, null=True)),
                ("prompt", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("deleted_at", models.DateTimeField(blank=True, db_index=True, null=True)),
                (
                    "ai_session",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="candidates",
                        to="flashcards.generationsession",
                    ),
                ),
                (
                    "origin_session",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="generated_cards",
                        to="flashcards.generationsession",
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["user_id", "ai_session"], name="idx_card_user_session"),
                    models.Index(fields=["user_id", "deleted_at"], name="idx_card_user_deleted"),
                ],
            },
        ),
        migrations.CreateModel(
            name="EventLog",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("user_id", models.CharField(db_index=True, max_length=64)),
                ("event_type", models.CharField(max_length=64)),
                ("event_source", models.CharField(choices=[("manual", "Manual"), ("ai", "AI")], max_length=8)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "flashcard",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="events",
                        to="flashcards.flashcard",
                    ),
                ),
                (
                    "ai_session",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="events",
                        to="flashcards.generationsession",
                    ),
                ),
            ],
            options={
                "ordering": ("created_at",),
            },
        ),
    ]
