"""
Booking service layer.

Provides business logic for:
- Room and staff allocation (room_staff_allocator, allocation_rules)
- Booking creation with conflict-safe writes (booking_allocation_service)
- Status lifecycle, cancellation and rescheduling (booking_status_service)

Import from the submodules directly; the availability services depend on
the allocation rules defined here.
"""
