"""HTTP server infrastructure module.

This module provides the FastAPI application factory and HTTP-related utilities:
- Application factory (``server.app``)
- Route handlers
- FastAPI dependencies
- Health checks
"""
