from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Project",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("name", models.CharField(max_length=200)),
                (
                    "domain",
                    models.CharField(
                        help_text="e.g. en.wikipedia.org", max_length=255, unique=True
                    ),
                ),
                ("code", models.CharField(max_length=50)),
                ("family", models.CharField(default="wikipedia", max_length=100)),
                (
                    "replica_database",
                    models.CharField(
                        blank=True,
                        help_text=(
                            "Database holding the replica tables, e.g. enwiki_p. "
                            "Leave empty when the tables live in the connection's default schema."
                        ),
                        max_length=100,
                    ),
                ),
                (
                    "use_userindex_views",
                    models.BooleanField(
                        default=False,
                        help_text="Read revision, archive and logging through their _userindex views.",
                    ),
                ),
                (
                    "has_page_assessments",
                    models.BooleanField(
                        blank=True,
                        help_text=(
                            "Whether the PageAssessments extension is installed. "
                            "Detected when empty."
                        ),
                        null=True,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["domain"],
            },
        ),
    ]
