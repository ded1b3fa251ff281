"""
Core Business Logic
==================

Core business logic modules for e-ink rendering and display selection.

Modules:
- rendering: template composition, browser capture, bitmap conversion
- display: firmware-gated format selection for device requests
- devices: boundary to the external device collaborator
"""
