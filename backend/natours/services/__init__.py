# Services package init
"""
Natours Backend: Services Layer
=================================

What:  Persistence logic sitting between routes (HTTP) and the database.

Service Inventory:
    - CrudService: list / get / create / delete for one model
    - tour_service, user_service, review_service, booking_service:
      shared instances used by the route groups
"""

from natours.models import Booking, Review, Tour, User
from natours.services.crud_service import CrudService

tour_service = CrudService(Tour, "tour")
user_service = CrudService(User, "user")
review_service = CrudService(Review, "review")
booking_service = CrudService(Booking, "booking")
