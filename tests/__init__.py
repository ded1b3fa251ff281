"""
Test Suite
==========

Comprehensive test suite matching the src/ directory structure.

Test Categories:
- unit: Unit tests for individual components
- integration: Integration tests for component interactions
- api: API endpoint testing
- mcp: MCP protocol testing
- performance: Performance and load testing
"""