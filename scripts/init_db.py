from pathlib import Path
import sys


# Ensure imports work when running this file directly: `python scripts/init_db.py`.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from school_ops.db import Base, SessionLocal, engine
from school_ops.services.language_level_service import seed_language_levels


Base.metadata.create_all(bind=engine)

db = SessionLocal()
try:
    created = seed_language_levels(db)
finally:
    db.close()

print(f'DB initialized. Language levels created: {created}')
