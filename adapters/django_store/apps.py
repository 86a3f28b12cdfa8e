"""
CRISTAL Adapters — Django Remote Store App Configuration
==========================================================
Registers the RemoteRecord table that backs DjangoRemoteStore.

This app:
- Persists tenant rows as JSON documents keyed by (table, record_id)
- Assigns integer ids for inventory and financial_transactions

This app does NOT:
- Interpret documents (codecs in core.state do that)
- Enforce business rules
"""

from django.apps import AppConfig


class DjangoStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "adapters.django_store"
    label = "cristal_store"
    verbose_name = "CRISTAL Remote Store"
