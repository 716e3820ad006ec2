import sys
import pathlib

import pytest

# Ensure repo root is on sys.path so tests can import backend.py and the shiftmint package
ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from shiftmint.allocation import StaffMember


@pytest.fixture
def make_staff():
    def _make(name, hours=0.0, score=0.0, role='server'):
        return StaffMember(id=name.lower(), name=name, role=role, hours_worked=hours, performance_score=score)
    return _make
