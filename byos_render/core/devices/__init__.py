"""
Devices Module
==============

Read/write boundary to the device collaborator.
"""
