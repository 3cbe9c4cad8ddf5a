from __future__ import annotations

import re
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
PACKAGE_DIR = ROOT / 'school_ops'

# Wall-clock reads must go through school_ops.core.time_provider so jobs and
# tests can pin "now".
FORBIDDEN = {
    'datetime.now()': re.compile(r'\bdatetime\.now\('),
    'datetime.utcnow()': re.compile(r'\bdatetime\.utcnow\('),
    'datetime.today()': re.compile(r'\bdatetime\.today\('),
    'date.today()': re.compile(r'\bdate\.today\('),
}
ALLOWED_FILES = ('school_ops/core/time_provider.py',)


def scan(package_dir: Path = PACKAGE_DIR) -> list[tuple[str, int, str]]:
    hits: list[tuple[str, int, str]] = []
    for file_path in sorted(package_dir.rglob('*.py')):
        if file_path.as_posix().endswith(ALLOWED_FILES):
            continue
        for line_no, line in enumerate(file_path.read_text(encoding='utf-8').splitlines(), start=1):
            for label, regex in FORBIDDEN.items():
                if regex.search(line):
                    hits.append((str(file_path.relative_to(ROOT)), line_no, label))
    return hits


def main() -> int:
    hits = scan()
    if not hits:
        print('school_ops/ reads the clock only through TimeProvider.')
        return 0
    print('Direct clock reads found (use TimeProvider instead):')
    for path, line_no, label in hits:
        print(f' - {path}:{line_no}: {label}')
    return 1


if __name__ == '__main__':
    sys.exit(main())
