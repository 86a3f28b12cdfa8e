"""
CRISTAL Remote Store — Record Model
=====================================
One row per remote record. The full row body lives in `data`;
`table`, `record_id` and `tenant_id` are lifted out for lookup.
"""

from __future__ import annotations

from django.db import models


class RemoteRecord(models.Model):
    table = models.CharField(max_length=64)
    record_id = models.CharField(max_length=64)
    numeric_id = models.BigIntegerField(
        null=True,
        blank=True,
        help_text="Set only for tables with integer ids.",
    )
    tenant_id = models.CharField(max_length=64, null=True, blank=True)
    data = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "cristal_remote_records"
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                fields=["table", "record_id"],
                name="uniq_remote_table_record",
            ),
        ]
        indexes = [
            models.Index(fields=["table", "tenant_id"], name="idx_remote_table_tenant"),
        ]

    def __str__(self) -> str:
        return f"{self.table}/{self.record_id}"
