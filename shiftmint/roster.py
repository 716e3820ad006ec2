"""
Roster files exported from the scheduling spreadsheet.

A roster is a CSV or Excel sheet with one row per employee. Headers are matched case-insensitively
with spaces treated as underscores, so "Hours Worked" and "hours_worked" are the same column.

Tip roster columns:  id, name (or first_name + last_name), role, hours_worked, performance_score, is_active
Wage roster columns: id, name (or first_name + last_name), hourly_wage, is_active

``id``, ``role`` and ``is_active`` are optional. Rows whose is_active is false are skipped.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import pandas as pd
from pydantic import ValidationError

from shiftmint.allocation import StaffMember
from shiftmint.errors import RosterError
from shiftmint.payroll import EmployeeWage

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_FALSE_VALUES = {'false', 'no', 'n', '0', 'inactive', ''}


def _read_table(path: PathLike) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise RosterError(f"Roster file not found: {path}")

    suffix = path.suffix.lower()
    if suffix in ('.xlsx', '.xlsm'):
        df = pd.read_excel(path, engine='openpyxl')
    elif suffix == '.csv':
        df = pd.read_csv(path)
    else:
        raise RosterError(f"Unsupported roster format '{suffix}', expected .csv or .xlsx")

    df.columns = [str(c).strip().lower().replace(' ', '_') for c in df.columns]
    return df


def _cell_text(value: Any) -> str:
    if value is None or pd.isna(value):
        return ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _cell_number(value: Any) -> Any:
    # blanks become None so validation reports them as missing instead of NaN
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, str):
        return value.strip()
    return float(value)


def _is_active(value: Any) -> bool:
    # blank cells count as active
    if value is None or pd.isna(value):
        return True
    if isinstance(value, (bool, int, float)):
        return bool(value)
    return str(value).strip().lower() not in _FALSE_VALUES


def _require(df: pd.DataFrame, columns: List[str], path: PathLike) -> None:
    missing = [c for c in columns if c not in df.columns]
    if 'name' not in df.columns and not {'first_name', 'last_name'} <= set(df.columns):
        missing.append('name')
    if missing:
        raise RosterError(f"Roster {path} is missing column(s): {', '.join(missing)}")


def _display_name(row: Dict[str, Any]) -> str:
    if 'name' in row and _cell_text(row['name']):
        return _cell_text(row['name'])
    return f"{_cell_text(row.get('first_name'))} {_cell_text(row.get('last_name'))}".strip()


def _active_records(df: pd.DataFrame):
    # spreadsheet row numbers: header is row 1
    for line, row in enumerate(df.to_dict(orient='records'), start=2):
        if 'is_active' in row and not _is_active(row['is_active']):
            continue
        yield line, row


def load_roster(path: PathLike) -> List[StaffMember]:
    """Read the active staff for a tip pool, in file order."""
    df = _read_table(path)
    _require(df, ['hours_worked', 'performance_score'], path)

    staff = []
    for line, row in _active_records(df):
        name = _display_name(row)
        try:
            staff.append(StaffMember(
                id=_cell_text(row.get('id')) or name,
                name=name,
                role=_cell_text(row.get('role')) or 'employee',
                hours_worked=_cell_number(row['hours_worked']),
                performance_score=_cell_number(row['performance_score']),
            ))
        except ValidationError as e:
            raise RosterError(f"Invalid roster row {line} in {path}: {e}") from e

    logger.info("Loaded %d active staff from %s", len(staff), path)
    return staff


def load_wage_roster(path: PathLike) -> List[EmployeeWage]:
    """Read hourly wages of the active employees, in file order."""
    df = _read_table(path)
    _require(df, ['hourly_wage'], path)

    employees = []
    for line, row in _active_records(df):
        name = _display_name(row)
        try:
            employees.append(EmployeeWage(
                id=_cell_text(row.get('id')) or name,
                name=name,
                hourly_wage=_cell_number(row['hourly_wage']),
            ))
        except ValidationError as e:
            raise RosterError(f"Invalid roster row {line} in {path}: {e}") from e

    logger.info("Loaded %d active employees from %s", len(employees), path)
    return employees
