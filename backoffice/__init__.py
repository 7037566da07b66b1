"""
Backoffice API.

Administrative backend exposing:
- Credential registration and login with bearer tokens
- CRUD management for users and services
"""
