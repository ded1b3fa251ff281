"""
API Module
==========

FastAPI application with device-facing and render endpoints.
"""
