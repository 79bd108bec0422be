from typing import List, Optional

from wellbeing import keys
from wellbeing.models import Booking, BookingStatus
from wellbeing.repository import EntityRepository
from wellbeing.utils.clock import system_clock


class BookingRepository(EntityRepository[Booking]):
    def __init__(self, store, clock=system_clock):
        super().__init__(store, Booking, keys.BOOKINGS, "booking", clock)

    def sort_records(self, records: List[Booking]) -> List[Booking]:
        return sorted(records, key=lambda b: b.created_at, reverse=True)

    async def create_booking(
        self,
        user_id: str,
        therapist_id: str,
        therapist_name: str,
        date: str,
        time: str,
        appointment_type: str,
        location: str,
    ) -> Booking:
        return await self.insert(user_id, {
            "therapist_id": therapist_id,
            "therapist_name": therapist_name,
            "date": date,
            "time": time,
            "appointment_type": appointment_type,
            "location": location,
            "status": "pending",
        })

    async def update_status(self, user_id: str, booking_id: str, status: BookingStatus) -> Optional[Booking]:
        return await self.update(user_id, booking_id, {"status": status})
