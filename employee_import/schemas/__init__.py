"""
Schemas
=======

Pydantic models for pipeline stages and API payloads.
"""
