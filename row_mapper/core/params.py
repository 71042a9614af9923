"""SQL parameter normalization.

Generated statements always use ``:name`` placeholders. Drivers that
expect ``%(name)s`` get them rewritten here.
"""

from __future__ import annotations

import re
from functools import lru_cache

# Matches :name but not ::typecast and not inside words
_PARAM_PATTERN = re.compile(r"(?<![:\w]):([a-zA-Z_]\w*)")

_UNSAFE_NAME_CHARS = re.compile(r"\W")


def normalize_params(sql: str, paramstyle: str) -> str:
    """Convert :name parameters to the target param style.

    Args:
        sql: SQL string with :name parameters.
        paramstyle: Target style - 'named' (no conversion) or 'pyformat' (%(name)s).

    Returns:
        SQL with parameters converted to the target style.
    """
    if paramstyle == "named":
        return sql
    return _convert_to_pyformat(sql)


@lru_cache(maxsize=256)
def _convert_to_pyformat(sql: str) -> str:
    return _PARAM_PATTERN.sub(r"%(\1)s", sql)


def param_name(prefix: str, column: str, index: int | None = None) -> str:
    """Build a placeholder name for *column* that is safe in every paramstyle."""
    name = f"{prefix}_{_UNSAFE_NAME_CHARS.sub('_', column)}"
    if index is not None:
        name = f"{name}_{index}"
    return name
