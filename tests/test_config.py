from __future__ import annotations

import pytest

from recurring_todos.config import PROJECT_ROOT, _parse_bool


def test_project_root_is_the_checkout() -> None:
    assert (PROJECT_ROOT / "recurring_todos" / "config.py").is_file()
    assert (PROJECT_ROOT / "alembic.ini").is_file()


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("true", True),
        (" Yes ", True),
        ("0", False),
        ("off", False),
        (None, True),
        ("   ", True),
    ],
)
def test_parse_bool(raw, expected) -> None:
    assert _parse_bool(raw, True) is expected