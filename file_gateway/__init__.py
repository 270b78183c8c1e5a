"""
File Gateway - an HTTP façade over an object storage bucket.

This package contains the complete application:
- core: Framework-agnostic file operations
- infrastructure: Object storage integration
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
