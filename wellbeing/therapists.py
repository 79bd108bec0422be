from typing import List, Optional

from wellbeing.models import Therapist

# Static directory; chat sessions and bookings refer to these ids
THERAPISTS: List[Therapist] = [
    Therapist(
        id="therapist_1",
        name="Dr. Sarah Johnson",
        specialization="Anxiety & Stress Management",
        bio=(
            "Licensed clinical psychologist with over 10 years of experience helping students manage "
            "anxiety, stress, and academic pressures. Specializes in cognitive-behavioral therapy and "
            "mindfulness techniques."
        ),
        experience=10,
        rating=4.8,
        price_per_session=120,
        available=True,
    ),
    Therapist(
        id="therapist_2",
        name="Dr. Michael Chen",
        specialization="Depression & Mood Disorders",
        bio=(
            "Experienced therapist focusing on depression, mood regulation, and helping students navigate "
            "life transitions. Uses evidence-based approaches including DBT and person-centered therapy."
        ),
        experience=8,
        rating=4.9,
        price_per_session=100,
        available=True,
    ),
]


def list_therapists() -> List[Therapist]:
    return list(THERAPISTS)


def get_therapist(therapist_id: str) -> Optional[Therapist]:
    return next((t for t in THERAPISTS if t.id == therapist_id), None)
