"""
Guest Photo Uploads - accepts guest photo submissions and files them in
cloud storage.

This package contains the complete application:
- core: Framework-agnostic decoding and upload orchestration
- infrastructure: Remote store integrations (Google Drive, R2, mock)
- api: Submission handler, FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
