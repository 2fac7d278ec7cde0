# backend/vetclinic/seed_demo.py
import logging

from .database import Base, SessionLocal, engine
from .models import Pet, User

logger = logging.getLogger(__name__)

DEMO_USERS = [
    dict(id="owner-1", role="pet_owner", first_name="Olivia", last_name="Reyes",
         email="olivia@example.com", phone="+15550100", api_token="owner-token"),
    dict(id="vet-1", role="veterinarian", first_name="Sam", last_name="Pawson",
         email="pawson@example.com", specialization="general practice",
         vet_application_status="approved", api_token="vet-token"),
    dict(id="vet-2", role="veterinarian", first_name="Ada", last_name="Whisker",
         email="whisker@example.com", specialization="surgery",
         vet_application_status="pending", api_token="pending-vet-token"),
]

DEMO_PETS = [
    dict(id="pet-1", owner_id="owner-1", name="Biscuit", species="dog", breed="beagle"),
]


def seed(db=None):
    """Create demo users and pets. Safe to run more than once."""
    own_session = db is None
    if own_session:
        Base.metadata.create_all(bind=engine)
        db = SessionLocal()
    try:
        if db.query(User).first():
            logger.info("Database already seeded. Skipping initialization.")
            return False
        db.add_all([User(**fields) for fields in DEMO_USERS])
        db.add_all([Pet(**fields) for fields in DEMO_PETS])
        db.commit()
        logger.info("Seeded %d users and %d pets", len(DEMO_USERS), len(DEMO_PETS))
        return True
    except Exception:
        db.rollback()
        raise
    finally:
        if own_session:
            db.close()


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    seed()


if __name__ == "__main__":
    main()
