"""
Rendering Module
===============

HTML composition and bitmap creation with browser automation.

Components:
- template_composer: Embed user fragments into the base layout
- page_renderer: Playwright screenshot capture at the panel viewport
- image_processor: Grayscale, dithering and artifact persistence
- pipeline: Orchestration with retry and deadline policy
"""
