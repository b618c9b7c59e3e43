"""Core application components.

This module provides the foundational components for the WorkHub access API:
- Database connection management via Prisma
- Application settings and configuration
- The short-lived access cache shared by the resolvers' consumers
"""
