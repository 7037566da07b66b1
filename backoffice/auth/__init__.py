"""
Authentication service for the backoffice API.

This module provides:
- User registration and login
- bcrypt password hashing
- JWT bearer token issuance and verification
"""
