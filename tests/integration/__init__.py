"""Integration test package.

These tests exercise the pub end to end through its HTTP surface.
"""
