"""
Fireworks order service: quotations, bookings and their documents
"""
__version__ = "1.0.0"
