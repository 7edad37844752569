"""
slotbook - public meeting slots from weekly availability, without double bookings.
"""

__version__ = "0.1.0"
