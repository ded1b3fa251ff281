"""
Data Models
===========

Pydantic models for rendered artifacts, devices, display directives and API payloads.
"""
