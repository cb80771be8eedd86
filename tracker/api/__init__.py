"""
API Package

Versioned REST routers combined by router.api_router.
"""
