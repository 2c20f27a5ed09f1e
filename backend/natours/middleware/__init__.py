# Middleware package init
"""
Natours Backend: Request Guard Pipeline
=========================================

What:  Cross-cutting protection and normalization applied to every request
       before it reaches a route group.

Guard chain (order matters, see pipeline.py):
    Request → [Security headers] → [Access log, dev only] → [Rate limit]
            → [Body parser, 10kb cap] → [Cookies] → [Injection sanitizer]
            → [Markup sanitizer] → [Parameter pollution] → [Timestamp]
            → [GZip] → Routers → [Not-found sentinel]

    Any guard may raise; control then jumps straight to the error
    normalization layer (natours.errors), skipping every later stage.

    Guards that reject or shrink input run before anything that trusts it.
    Compression wraps only the response path of the routers.
"""
