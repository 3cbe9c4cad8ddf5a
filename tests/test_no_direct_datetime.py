from __future__ import annotations

import re
from pathlib import Path


PACKAGE_DIR = Path(__file__).resolve().parents[1] / 'school_ops'
CLOCK_CALL = re.compile(r'\b(?:datetime\.(?:now|utcnow|today)|date\.today)\(')


def test_clock_is_only_read_through_time_provider() -> None:
    offenders = []
    for file_path in PACKAGE_DIR.rglob('*.py'):
        if file_path.as_posix().endswith('core/time_provider.py'):
            continue
        for line_no, line in enumerate(file_path.read_text(encoding='utf-8').splitlines(), start=1):
            if CLOCK_CALL.search(line):
                offenders.append(f'{file_path.name}:{line_no}: {line.strip()}')

    assert not offenders, 'Direct clock reads found:\n' + '\n'.join(offenders)
