"""Knowloop backend: study-session lifecycle, bookings and material access control"""

__version__ = "1.0.0"
