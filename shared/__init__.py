"""Shared utilities package for the Security Patrol application.

This package contains shared code used by both the backend Flask API and the
patrol client. It includes:

- Geo math (geo.py) - Great-circle distance, proximity checks and unit helpers
- Database models (models.py) - SQLAlchemy models for locations, checkpoints and verifications
- Enums (enums.py) - Shared enumeration definitions for statuses and units
- Validation utilities (validation.py, schemas.py) - Input validation and sanitization

All shared components are designed to work identically in both backend and client contexts.
"""
