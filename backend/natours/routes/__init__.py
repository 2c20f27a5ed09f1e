# Routes package init
"""
Natours Backend: Route Groups
===============================

    views       GET /, GET /tour/{slug}           (HTML pages)
    tours       /api/v1/tours
    users       /api/v1/users
    reviews     /api/v1/reviews
    bookings    /api/v1/bookings
    health      GET /health
    not_found   every other path (must be included last)
"""
