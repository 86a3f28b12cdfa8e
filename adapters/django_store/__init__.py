"""
CRISTAL Adapters — Django Remote Store
========================================
Durable RemoteStore backed by the Django ORM.
"""
