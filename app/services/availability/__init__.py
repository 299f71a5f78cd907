"""
Availability: conflict detection, slot and date calculations, and caching.

Import the concrete modules directly; the booking store depends on
``conflict_detector`` and must not pull in the calculator.
"""
