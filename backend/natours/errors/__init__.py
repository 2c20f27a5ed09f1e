"""
Natours Backend: Error Normalization Package
==============================================

classify.py:  exception → Operational | Defect
handler.py:   Operational | Defect → JSON body or rendered error page
"""

from natours.errors.classify import Classified, Defect, Operational, classify
from natours.errors.handler import ErrorNormalizer, register_exception_handlers

__all__ = [
    "Classified",
    "Defect",
    "ErrorNormalizer",
    "Operational",
    "classify",
    "register_exception_handlers",
]
