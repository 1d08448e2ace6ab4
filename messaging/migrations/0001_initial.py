"""
Initial migration for the messaging app.

Creates the PrivateMessage table with the indexes used by conversation
range queries and history replay.
"""
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PrivateMessage",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("content", models.TextField()),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("receiver", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="received_private_messages",
                    to=settings.AUTH_USER_MODEL,
                )),
                ("sender", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="sent_private_messages",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "ordering": ["id"],
            },
        ),
        migrations.AddIndex(
            model_name="privatemessage",
            index=models.Index(fields=["sender", "receiver", "id"], name="pm_pair_idx"),
        ),
        migrations.AddIndex(
            model_name="privatemessage",
            index=models.Index(fields=["receiver", "id"], name="pm_receiver_idx"),
        ),
    ]
