# Middleware package init
"""
TravelPlaces Backend — Middleware Package
==========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Logging] → [Cache-Control] → [GZip] → [CORS] → Route Handler

    1. Request ID: correlation id, set before anything logs
    2. Logging: one access line per request, carrying the request id
    3. Cache-Control: configured caching header on every response
    4. GZip: list responses with inlined base64 images compress well
    5. CORS: preflight handling and Access-Control-* headers
"""
