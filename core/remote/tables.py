"""
CRISTAL Core Remote — Table Names
===================================
Every tenant-owned table carries a `tenant_id` column.
`inventory` and `financial_transactions` use integer ids; every
other table uses string (uuid) ids.
"""


class Table:
    TENANTS = "tenants"
    CLIENTS = "clients"
    WORK_ORDERS = "work_orders"
    INVENTORY = "inventory"
    SERVICES = "services"
    EMPLOYEES = "employees"
    EMPLOYEE_TRANSACTIONS = "employee_transactions"
    FINANCIAL_TRANSACTIONS = "financial_transactions"
    REWARDS = "rewards"
    REDEMPTIONS = "redemptions"
    POINTS_HISTORY = "points_history"
    FIDELITY_CARDS = "fidelity_cards"
    ALERTS = "alerts"
    MARKETING_CAMPAIGNS = "marketing_campaigns"


NUMERIC_ID_TABLES = frozenset({
    Table.INVENTORY,
    Table.FINANCIAL_TRANSACTIONS,
})
