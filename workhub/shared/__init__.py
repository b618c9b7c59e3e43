"""Shared utilities and cross-domain components.

This module contains utilities used across multiple domains:
- Exception classes for consistent error handling
- The permission catalog, role defaults and route mapping
- Route guards consuming the resolvers' output
"""
