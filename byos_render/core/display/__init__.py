"""
Display Module
==============

Per-request selection of the raster a device should download.
"""
