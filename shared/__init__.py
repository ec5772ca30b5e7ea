"""
Shared configuration, error types and API schemas.
"""
