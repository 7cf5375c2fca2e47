"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- storage: Remote stores (Google Drive, R2/S3, in-memory mock)

These wrappers translate between SDK formats and our domain models.
"""
