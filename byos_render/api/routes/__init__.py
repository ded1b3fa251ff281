"""
API Routes
==========

Routers for display, render and health endpoints.
"""
