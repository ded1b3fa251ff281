"""
BYOS Render
===========

A bring-your-own-server backend for 800x480 e-ink displays.

This package provides:
- HTML composition from user fragments and a base layout
- Headless browser rendering with Playwright
- Grayscale and 1-bit dithered artifacts for the panel
- Per-device raster format selection based on firmware version
- FastAPI endpoints for devices and render triggers
"""

__version__ = "1.0.0"
__author__ = "BYOS Render Team"
