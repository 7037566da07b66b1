"""
Generic record storage and CRUD endpoints for users and services.
"""
