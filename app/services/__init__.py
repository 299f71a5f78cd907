# app/services/__init__.py
"""
Service layer root package.

Subpackages:

- availability: conflict detection, availability calculation and the availability cache
- booking: allocation rules, the room/staff allocator and the booking services
- cache: cache backends
- base: ServiceResult and BaseService
"""
