"""FastAPI application and routes.

This module provides the REST API for the festival events service.

## API Structure

- /auth - Google sign-in and session tokens
- /api/users - Profiles and account administration
- /api/event-types - Festival categories
- /api/events - Festivals and nearby search
- /api/microevents - Activities inside festivals
- /api/collection - The caller's favorites, saves and created content

## Authentication

Mutating endpoints and everything under /api/collection and /api/users
require `Authorization: Bearer <session token>`.
"""

from festival_events.api.app import create_app

__all__ = ["create_app"]
