from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from school_ops.models import LanguageLevel


logger = logging.getLogger(__name__)

_GROUP_LABELS = (
    ('a1', 'Beginner'),
    ('a2', 'Elementary'),
    ('b1', 'Intermediate'),
    ('b2', 'Upper Intermediate'),
    ('c1', 'Advanced'),
)


def language_level_rows() -> list[dict]:
    rows = [{'code': 'a0', 'display_name': 'A0 - Complete Beginner', 'level_group': 'a0', 'level_number': None}]
    for group, label in _GROUP_LABELS:
        for number in range(1, 13):
            rows.append(
                {
                    'code': f'{group}.{number}',
                    'display_name': f'{group.upper()}.{number} - {label} Level {number}',
                    'level_group': group,
                    'level_number': number,
                }
            )
    return rows


def seed_language_levels(db: Session) -> int:
    existing = {code for (code,) in db.query(LanguageLevel.code).all()}
    created = 0
    for row in language_level_rows():
        if row['code'] in existing:
            continue
        db.add(LanguageLevel(**row))
        created += 1
    if created:
        db.commit()
        logger.info('language_levels_seeded created=%s', created)
    return created


def get_level_by_code(db: Session, code: str) -> LanguageLevel | None:
    return db.query(LanguageLevel).filter(LanguageLevel.code == (code or '').strip().lower()).first()
