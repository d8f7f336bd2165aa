"""
Tests package - test suite for the image mirror webhook.

Contains:
- unit/: Unit tests for individual components, no cluster required
"""
