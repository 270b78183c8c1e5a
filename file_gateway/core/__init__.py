"""
Core logic for the file gateway.

This module is framework-agnostic - it doesn't import FastAPI or boto3.
The storage backend is reached through the ObjectStore protocol, so the
gateway can be tested against an in-memory store.
"""
