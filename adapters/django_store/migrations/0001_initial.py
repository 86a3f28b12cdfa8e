from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="RemoteRecord",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("table", models.CharField(max_length=64)),
                ("record_id", models.CharField(max_length=64)),
                (
                    "numeric_id",
                    models.BigIntegerField(
                        blank=True,
                        help_text="Set only for tables with integer ids.",
                        null=True,
                    ),
                ),
                ("tenant_id", models.CharField(blank=True, max_length=64, null=True)),
                ("data", models.JSONField(default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "cristal_remote_records",
                "ordering": ["id"],
                "indexes": [
                    models.Index(
                        fields=["table", "tenant_id"],
                        name="idx_remote_table_tenant",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("table", "record_id"),
                        name="uniq_remote_table_record",
                    ),
                ],
            },
        ),
    ]
