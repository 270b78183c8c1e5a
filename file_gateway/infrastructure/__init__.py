"""
Infrastructure layer - external service integrations.

- storage: Object storage (S3 and S3-compatible services)

These wrappers translate between boto3 responses and our domain models.
"""
